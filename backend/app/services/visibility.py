"""Reglas de visibilidad de registros por usuario.

Un registro es visible para su dueño siempre. Para el resto depende de ``access``:
``Public`` lo ve cualquiera, ``Private`` nadie más, ``Shared`` solo los usuarios
con permiso explícito. Un registro eliminado no está disponible para nadie.

Se evalúa en cada lectura; nunca se cachea entre requests porque el modo de
acceso puede cambiar en cualquier momento.
"""
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from app.schemas.account import Access


class Visibility(StrEnum):
    visible = "visible"
    denied = "denied"
    unavailable = "unavailable"


def resolve_visibility(user: Any, record: Any | None) -> Visibility:
    if record is None or getattr(record, "deleted_at", None) is not None:
        return Visibility.unavailable
    if record.user_id == user.id:
        return Visibility.visible
    if record.access == Access.private:
        return Visibility.denied
    if record.access == Access.shared and user.id not in record.shared_user_ids:
        return Visibility.denied
    return Visibility.visible


def can_view(user: Any, record: Any | None) -> bool:
    return resolve_visibility(user, record) is Visibility.visible


def filter_visible(user: Any, records: Iterable[Any]) -> list[Any]:
    return [r for r in records if can_view(user, r)]
