"""Registro de actividad de usuarios sobre cuentas y otros registros."""
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.models.activity import Activity
from app.models.user import User

ACTIONS = ("created", "updated", "deleted", "viewed")


def log_activity(db: Session, user: User, subject: Any, action: str) -> Activity:
    """Registra ``action``; 'viewed' renueva la fila existente en vez de duplicarla."""
    if action not in ACTIONS:
        raise ValueError(f"Acción desconocida: {action}")
    now = datetime.now(timezone.utc)
    subject_type = type(subject).__name__
    info = getattr(subject, "name", None) or getattr(subject, "full_name", None)

    activity = None
    if action == "viewed":
        activity = db.query(Activity).filter(
            Activity.user_id == user.id,
            Activity.subject_type == subject_type,
            Activity.subject_id == subject.id,
            Activity.action == "viewed",
        ).first()
    if activity is None:
        activity = Activity(
            user_id=user.id,
            subject_type=subject_type,
            subject_id=subject.id,
            action=action,
            created_at=now,
        )
        db.add(activity)
    activity.info = info
    activity.updated_at = now
    logger.debug(f"Actividad: usuario {user.id} {action} {subject_type} #{subject.id}")
    return activity


def mark_viewed(db: Session, user: User, record: Any) -> None:
    """Efecto de un show exitoso: fecha de última vista + actividad 'viewed'."""
    record.last_viewed_at = datetime.now(timezone.utc)
    log_activity(db, user, record, "viewed")
    db.commit()
