"""Cursor de paginación por sesión y recurso (página actual y búsqueda actual)."""
from collections.abc import MutableMapping
from typing import Any


class PaginationState:
    """Lee y escribe ``{recurso}_current_page`` / ``{recurso}_current_query`` en la sesión.

    Precedencia al resolver: valor del request > valor guardado > default.
    El valor resuelto se guarda y pasa a ser la base de los siguientes requests.
    """

    def __init__(self, session: MutableMapping[str, Any], resource: str):
        self._session = session
        self.page_key = f"{resource}_current_page"
        self.query_key = f"{resource}_current_query"

    @property
    def page(self) -> int:
        try:
            return max(1, int(self._session.get(self.page_key) or 1))
        except (TypeError, ValueError):
            return 1

    @page.setter
    def page(self, value: int) -> None:
        self._session[self.page_key] = max(1, int(value))

    @property
    def query(self) -> str | None:
        return self._session.get(self.query_key) or None

    @query.setter
    def query(self, value: str | None) -> None:
        self._session[self.query_key] = (value or "").strip() or None

    def resolve_page(self, requested: int | None = None) -> int:
        self.page = requested if requested is not None else self.page
        return self.page

    def resolve_query(self, requested: str | None = None) -> str | None:
        if requested is not None:
            self.query = requested
        return self.query
