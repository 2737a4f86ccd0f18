"""Acceso a registros con dueño y modo de acceso (cuentas, contactos)."""
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import Query, Session

from app.core.errors import RecordUnavailable, UnavailableReason
from app.models.permission import Permission
from app.models.user import User
from app.schemas.account import Access
from app.services.visibility import Visibility, resolve_visibility


def visible_candidates(db: Session, user: User, model: type) -> Query:
    """Registros no eliminados que el usuario podría ver (prefiltro en SQL)."""
    shared_ids = select(Permission.asset_id).where(
        Permission.asset_type == model.__name__,
        Permission.user_id == user.id,
    )
    return db.query(model).filter(
        model.deleted_at.is_(None),
        or_(
            model.user_id == user.id,
            model.access == Access.public.value,
            and_(model.access == Access.shared.value, model.id.in_(shared_ids)),
        ),
    )


def load_record(db: Session, model: type, record_id: int) -> Any | None:
    record = db.query(model).filter(model.id == record_id).first()
    if record is None or record.deleted_at is not None:
        return None
    return record


def fetch_visible(db: Session, user: User, model: type, record_id: int) -> Any:
    """Carga un registro visible para ``user`` o lanza RecordUnavailable."""
    record = load_record(db, model, record_id)
    visibility = resolve_visibility(user, record)
    if visibility is Visibility.visible:
        return record
    reason = UnavailableReason.not_found if visibility is Visibility.unavailable else UnavailableReason.access_denied
    logger.info(f"{model.__name__} #{record_id} no disponible para usuario {user.id}: {reason}")
    raise RecordUnavailable(model.__name__, record_id, reason)


def replace_permissions(db: Session, record: Any, user_ids: list[int] | None) -> None:
    """Deja como permisos exactamente ``user_ids`` (usuarios existentes, sin el dueño)."""
    asset_type = type(record).__name__
    db.execute(delete(Permission).where(
        Permission.asset_type == asset_type,
        Permission.asset_id == record.id,
    ))
    wanted = {uid for uid in (user_ids or []) if uid != record.user_id}
    if wanted:
        existing = db.scalars(select(User.id).where(User.id.in_(wanted))).all()
        for uid in sorted(existing):
            db.add(Permission(user_id=uid, asset_type=asset_type, asset_id=record.id))
    db.flush()
    db.expire(record, ["permissions"])


def soft_delete(db: Session, record: Any) -> None:
    record.deleted_at = datetime.now(timezone.utc)
    db.flush()
