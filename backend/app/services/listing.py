"""Armado de listados: visibilidad + búsqueda + orden + paginación.

El mismo flujo sirve a la vista paginada y a la exportación; en modo
``export`` se devuelve el conjunto completo sin recortar a una página.
"""
import re
from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger
from sqlalchemy import String, asc, desc, func
from sqlalchemy.orm import Session

from app.models.user import User
from app.services.pagination_state import PaginationState
from app.services.preference_service import ViewPreferences, resolve_preferences
from app.services.records import visible_candidates
from app.services.resources import Resource
from app.services.visibility import filter_visible

_QUERY_JUNK = re.compile(r"[^\w\s\-.']", re.UNICODE)


class OutputMode(StrEnum):
    page = "page"
    export = "export"


@dataclass
class Listing:
    items: list[Any]
    page: int
    per_page: int
    total: int
    query: str | None
    preferences: ViewPreferences
    mode: OutputMode = OutputMode.page

    @property
    def pages(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page if self.per_page else 0

    @property
    def has_next(self) -> bool:
        return self.mode is OutputMode.page and self.page * self.per_page < self.total

    @property
    def has_prev(self) -> bool:
        return self.mode is OutputMode.page and self.page > 1

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total": self.total,
            "pages": self.pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def sanitize_query(query: str | None) -> str:
    """'second?!' -> 'second'."""
    return _QUERY_JUNK.sub("", query or "").strip()


def _search_filter(resource: Resource, term: str):
    escaped = term.replace("_", "\\_")
    column = getattr(resource.model, resource.search_column)
    return column.ilike(f"%{escaped}%", escape="\\")


def _sort_expression(column):
    """Texto sin distinguir mayúsculas: 'apple' y 'Banana' en orden alfabético."""
    if isinstance(column.type, String):
        return func.lower(column)
    return column


def _order_by(resource: Resource, preferences: ViewPreferences) -> list:
    column, direction = resource.parse_sort_key(preferences.sort_key) or resource.parse_sort_key(
        resource.default_sort_key
    )
    order = asc if direction == "asc" else desc
    return [order(_sort_expression(getattr(resource.model, column))), asc(resource.model.id)]


def assemble_listing(
    db: Session,
    user: User,
    resource: Resource,
    *,
    page: int,
    query: str | None,
    preferences: ViewPreferences,
    mode: OutputMode = OutputMode.page,
) -> Listing:
    q = visible_candidates(db, user, resource.model)
    term = sanitize_query(query)
    if term:
        q = q.filter(_search_filter(resource, term))
    ordered = q.order_by(*_order_by(resource, preferences))

    if mode is OutputMode.export:
        items = filter_visible(user, ordered.all())
        total = len(items)
    else:
        # El prefiltro SQL ya aplica la visibilidad; filter_visible revalida la página
        total = q.count()
        start = (page - 1) * preferences.per_page
        items = filter_visible(user, ordered.offset(start).limit(preferences.per_page).all())
    return Listing(
        items=items,
        page=page,
        per_page=preferences.per_page,
        total=total,
        query=query,
        preferences=preferences,
        mode=mode,
    )


def build_listing(
    db: Session,
    user: User,
    session: MutableMapping[str, Any],
    resource: Resource,
    *,
    page: int | None = None,
    query: str | None = None,
    mode: OutputMode = OutputMode.page,
) -> Listing:
    """Resuelve cursor y preferencias del usuario y arma el listado."""
    state = PaginationState(session, resource.name)
    current_page = state.resolve_page(page)
    current_query = state.resolve_query(query)
    preferences = resolve_preferences(db, user, resource)
    listing = assemble_listing(
        db,
        user,
        resource,
        page=current_page,
        query=current_query,
        preferences=preferences,
        mode=mode,
    )
    logger.debug(
        f"Listado {resource.name} usuario={user.id} page={current_page} query={current_query!r} "
        f"sort={preferences.sort_key!r} total={listing.total} mode={mode}"
    )
    return listing


def relist_after_delete(
    db: Session,
    user: User,
    session: MutableMapping[str, Any],
    resource: Resource,
) -> tuple[Listing, bool]:
    """Vuelve a listar la página guardada tras eliminar un registro.

    Si la página quedó vacía y no es la primera, retrocede exactamente una
    página (no busca la última página con datos). Devuelve ``(listing, vacia)``
    donde ``vacia`` indica que la página original quedó sin registros.
    """
    state = PaginationState(session, resource.name)
    listing = build_listing(db, user, session, resource)
    if listing.items:
        return listing, False
    if state.page > 1:
        state.page = state.page - 1
        logger.debug(f"Página de {resource.name} vacía tras eliminar; se retrocede a {state.page}")
        listing = build_listing(db, user, session, resource)
    return listing, True


def auto_complete(db: Session, user: User, resource: Resource, query: str, limit: int) -> list[Any]:
    term = sanitize_query(query)
    if not term:
        return []
    name = getattr(resource.model, resource.search_column)
    q = visible_candidates(db, user, resource.model).filter(_search_filter(resource, term))
    records = filter_visible(user, q.order_by(asc(func.lower(name)), asc(resource.model.id)).limit(limit).all())
    return records[:limit]
