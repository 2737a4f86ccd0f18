from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from app.core.database import Base


def _fmt(value: datetime | None) -> str | None:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else None


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False, index=True)
    website = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    background_info = Column(Text, nullable=True)
    access = Column(Text, nullable=False, default="Public", index=True)  # Public, Private, Shared
    last_viewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        index=True,
    )
    # Soft delete: una cuenta con deleted_at ya no existe para nadie
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Solo lectura: las escrituras pasan por records.replace_permissions()
    permissions = relationship(
        "Permission",
        primaryjoin="and_(Permission.asset_type == 'Account', foreign(Permission.asset_id) == Account.id)",
        viewonly=True,
        lazy="selectin",
    )

    @property
    def shared_user_ids(self) -> set[int]:
        return {p.user_id for p in self.permissions}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "website": self.website,
            "phone": self.phone,
            "email": self.email,
            "background_info": self.background_info,
            "access": self.access,
            "shared_with": sorted(self.shared_user_ids),
            "last_viewed_at": _fmt(self.last_viewed_at),
            "created_at": _fmt(self.created_at),
            "updated_at": _fmt(self.updated_at),
        }
