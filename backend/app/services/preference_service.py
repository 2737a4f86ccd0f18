"""Preferencias de vista por usuario y recurso: página, outline y orden.

Cada preferencia se guarda como una fila ``user_preferences`` con nombre
``{recurso}_{clave}`` y valor codificado en base64 sobre un sobre JSON
versionado. Si falta o no se puede decodificar se usa el default del sistema.
"""
import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import raise_api_error
from app.models.user import User, UserPreference
from app.schemas.account import Outline
from app.services.resources import Resource

PREFERENCE_FORMAT_VERSION = 1
PER_PAGE = "per_page"
OUTLINE = "outline"
SORT_BY = "sort_by"

_MISSING = object()


@dataclass(frozen=True)
class ViewPreferences:
    per_page: int
    outline: str
    sort_key: str

    @property
    def sort_by(self) -> str:
        """Nombre simple de la columna: 'accounts.name ASC' -> 'name'."""
        return self.sort_key.split()[0].rpartition(".")[2]


def preference_name(resource: Resource, key: str) -> str:
    return f"{resource.name}_{key}"


def encode_preference(value: Any) -> str:
    envelope = json.dumps({"v": PREFERENCE_FORMAT_VERSION, "value": value}, ensure_ascii=True)
    return base64.b64encode(envelope.encode("utf-8")).decode("ascii")


def decode_preference(raw: str) -> Any:
    """Devuelve el valor o ``_MISSING`` si el formato no es válido."""
    try:
        envelope = json.loads(base64.b64decode(raw.encode("ascii"), validate=True))
    except (binascii.Error, ValueError, UnicodeError):
        return _MISSING
    if not isinstance(envelope, dict) or envelope.get("v") != PREFERENCE_FORMAT_VERSION or "value" not in envelope:
        return _MISSING
    return envelope["value"]


def get_preference(db: Session, user: User, name: str, default: Any = None) -> Any:
    row = db.query(UserPreference).filter(UserPreference.user_id == user.id, UserPreference.name == name).first()
    if row is None:
        return default
    value = decode_preference(row.value)
    if value is _MISSING:
        logger.warning(f"Preferencia '{name}' del usuario {user.id} ilegible; se usa el valor por defecto")
        return default
    return value


def set_preference(db: Session, user: User, name: str, value: Any) -> None:
    row = db.query(UserPreference).filter(UserPreference.user_id == user.id, UserPreference.name == name).first()
    if row is None:
        row = UserPreference(user_id=user.id, name=name)
        db.add(row)
    row.value = encode_preference(value)


def resolve_preferences(db: Session, user: User, resource: Resource) -> ViewPreferences:
    settings = get_settings()

    per_page = get_preference(db, user, preference_name(resource, PER_PAGE))
    if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page < 1:
        per_page = settings.default_per_page

    outline = get_preference(db, user, preference_name(resource, OUTLINE))
    if outline not in {o.value for o in Outline}:
        outline = settings.default_outline

    sort_key = get_preference(db, user, preference_name(resource, SORT_BY))
    if not isinstance(sort_key, str) or resource.parse_sort_key(sort_key) is None:
        sort_key = resource.default_sort_key

    return ViewPreferences(per_page=min(per_page, settings.max_per_page), outline=outline, sort_key=sort_key)


def save_preferences(
    db: Session,
    user: User,
    resource: Resource,
    *,
    per_page: int | None = None,
    outline: str | None = None,
    sort_by: str | None = None,
) -> ViewPreferences:
    """Guarda solo las claves recibidas; ``sort_by`` es el nombre simple del campo."""
    if sort_by is not None and sort_by not in resource.sort_fields:
        raise_api_error(
            400,
            "bad_request",
            "Campo de orden no válido",
            {"sort_by": sort_by, "allowed": sorted(resource.sort_fields)},
        )
    max_per_page = get_settings().max_per_page
    if per_page is not None and per_page > max_per_page:
        raise_api_error(
            400,
            "bad_request",
            "Tamaño de página no válido",
            {"per_page": per_page, "max": max_per_page},
        )
    if per_page is not None:
        set_preference(db, user, preference_name(resource, PER_PAGE), int(per_page))
    if outline is not None:
        set_preference(db, user, preference_name(resource, OUTLINE), str(outline))
    if sort_by is not None:
        set_preference(db, user, preference_name(resource, SORT_BY), resource.qualified_sort(sort_by))
    db.commit()
    logger.debug(f"Preferencias de {resource.name} guardadas para usuario {user.id}")
    return resolve_preferences(db, user, resource)
