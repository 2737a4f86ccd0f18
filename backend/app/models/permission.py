from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint

from app.core.database import Base


class Permission(Base):
    """Acceso explícito de un usuario a un registro compartido (access = 'Shared').

    Es polimórfica: ``asset_type`` es el nombre del modelo ('Account', 'Contact').
    """
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "asset_type", "asset_id"),
        Index("ix_permissions_asset", "asset_type", "asset_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_type = Column(Text, nullable=False)
    asset_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
