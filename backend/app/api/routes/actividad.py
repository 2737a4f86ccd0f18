"""Activity feed: actividad reciente del usuario actual."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.activity import Activity
from app.models.user import User
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/api/actividad", tags=["actividad"])


@router.get("")
def get_activity_feed(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: str | None = Query(None),
):
    """Feed de actividad del usuario, lo más reciente primero."""
    q = db.query(Activity).filter(Activity.user_id == user.id)
    if action:
        q = q.filter(Activity.action == action)

    total = q.count()
    items = q.order_by(desc(Activity.updated_at), desc(Activity.id)).offset(offset).limit(limit).all()
    return {"actividad": [a.to_dict() for a in items], "total": total}
