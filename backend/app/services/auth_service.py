"""Servicio de autenticación con JWT, hashing de contraseñas y sesión por token."""
import uuid
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.session_store import SessionContext
from app.models.user import User

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def create_token(user: User, session_id: str | None = None) -> str:
    """Cada token lleva su propio ``sid``: el estado de listados vive con él."""
    settings = get_settings()
    payload = {
        "sub": str(user.id),
        "sid": session_id or uuid.uuid4().hex,
        "username": user.username,
        "role": user.role,
        "name": user.full_name,
        "exp": datetime.now(UTC) + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as err:
        raise HTTPException(status_code=401, detail="Token expirado") from err
    except jwt.InvalidTokenError as err:
        raise HTTPException(status_code=401, detail="Token inválido") from err


def get_current_user_optional(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User | None:
    """Retorna el usuario autenticado o None si no hay token válido."""
    if not creds:
        return None
    try:
        payload = decode_token(creds.credentials)
        user_id = int(payload["sub"])
    except (HTTPException, KeyError, ValueError):
        return None
    return db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Requiere autenticación. Lanza 401 si no hay token válido."""
    if not creds:
        raise HTTPException(status_code=401, detail="No autenticado")
    payload = decode_token(creds.credentials)
    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError) as err:
        raise HTTPException(status_code=401, detail="Token inválido") from err
    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if not user:
        raise HTTPException(status_code=401, detail="Usuario no encontrado o inactivo")
    request.state.token_payload = payload
    return user


def get_session(request: Request, user: User = Depends(get_current_user)) -> SessionContext:
    """Estado de sesión del token actual (tokens antiguos sin ``sid`` comparten uno por usuario)."""
    payload = getattr(request.state, "token_payload", {}) or {}
    session_id = payload.get("sid") or f"user-{user.id}"
    return SessionContext(session_id, ttl=get_settings().session_ttl_minutes * 60)


def require_role(*roles: str):
    """Dependency factory para requerir un rol específico."""
    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=f"Rol requerido: {', '.join(roles)}")
        return user
    return dependency


def create_default_admin(db: Session) -> None:
    """Crea un admin por defecto si no existen usuarios."""
    settings = get_settings()
    count = db.query(User).count()
    if count == 0:
        admin = User(
            username=settings.default_admin_username,
            email=settings.default_admin_email,
            hashed_password=hash_password(settings.default_admin_password),
            full_name=settings.default_admin_full_name,
            role="admin",
        )
        db.add(admin)
        db.commit()
        logger.warning("Usuario admin por defecto creado. Cambie la contraseña inmediatamente.")
