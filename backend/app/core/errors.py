from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException


class ApiError(HTTPException):
    def __init__(self, status_code: int, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(status_code=status_code, detail={"code": code, "message": message, "details": details})


def raise_api_error(status_code: int, code: str, message: str, details: dict[str, Any] | None = None) -> None:
    raise ApiError(status_code=status_code, code=code, message=message, details=details)


class UnavailableReason(StrEnum):
    not_found = "not_found"
    access_denied = "access_denied"


class RecordUnavailable(Exception):
    """El registro pedido no existe, fue eliminado o no es visible para el usuario.

    ``reason`` distingue el caso solo para logs; hacia el usuario ambos casos
    se presentan igual para no revelar la existencia del registro.
    """

    def __init__(self, model: str, record_id: int, reason: UnavailableReason):
        super().__init__(f"{model} #{record_id} no disponible ({reason})")
        self.model = model
        self.record_id = record_id
        self.reason = reason


def default_code_for_status(status_code: int) -> str:
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        422: "validation_error",
        429: "rate_limited",
        500: "internal_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")
