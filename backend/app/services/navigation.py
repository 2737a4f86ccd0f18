"""Resolución del registro "anterior" que el cliente envía como pista al editar.

La pista puede estar desactualizada (el registro se eliminó o dejó de ser
visible). Eso no es un error: la vista simplemente quita ese registro.
"""
from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy.orm import Session

from app.models.user import User
from app.services.records import load_record
from app.services.visibility import Visibility, resolve_visibility


class PreviousStatus(StrEnum):
    none = "none"
    removed = "removed"
    hidden = "hidden"
    available = "available"


@dataclass(frozen=True)
class ResolvedPrevious:
    status: PreviousStatus
    id: int | None = None

    @property
    def available(self) -> bool:
        return self.status is PreviousStatus.available

    def to_dict(self) -> dict | None:
        if self.status is PreviousStatus.none:
            return None
        return {"id": self.id, "status": self.status.value}


def resolve_previous(
    db: Session,
    user: User,
    model: type,
    current_id: int,
    hinted_id: int | None,
) -> ResolvedPrevious:
    if hinted_id is None or hinted_id == current_id:
        return ResolvedPrevious(PreviousStatus.none)
    visibility = resolve_visibility(user, load_record(db, model, hinted_id))
    if visibility is Visibility.unavailable:
        return ResolvedPrevious(PreviousStatus.removed, hinted_id)
    if visibility is Visibility.denied:
        return ResolvedPrevious(PreviousStatus.hidden, hinted_id)
    return ResolvedPrevious(PreviousStatus.available, hinted_id)
