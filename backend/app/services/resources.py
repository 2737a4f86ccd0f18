"""Descripción de los recursos listables (nombre, modelo, campos de orden)."""
from dataclasses import dataclass, field

from app.models.account import Account


@dataclass(frozen=True)
class Resource:
    name: str
    model: type
    # campo simplificado -> dirección fija
    sort_fields: dict[str, str] = field(default_factory=dict)
    default_sort: str = "name"
    search_column: str = "name"

    def qualified_sort(self, sort_by: str) -> str:
        return f"{self.name}.{sort_by} {self.sort_fields[sort_by]}"

    @property
    def default_sort_key(self) -> str:
        return self.qualified_sort(self.default_sort)

    def parse_sort_key(self, sort_key: str) -> tuple[str, str] | None:
        """'accounts.name ASC' -> ('name', 'asc'); None si no es un orden permitido."""
        parts = (sort_key or "").split()
        if len(parts) != 2:
            return None
        qualified, direction = parts
        table, _, column = qualified.rpartition(".")
        if table not in ("", self.name) or column not in self.sort_fields:
            return None
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            return None
        return column, direction


ACCOUNTS = Resource(
    name="accounts",
    model=Account,
    sort_fields={"name": "ASC", "created_at": "DESC", "updated_at": "DESC"},
)
