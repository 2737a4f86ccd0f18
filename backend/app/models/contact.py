from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from app.core.database import Base


class Contact(Base):
    """Contacto; se usa como registro relacionado al crear una cuenta."""
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    access = Column(Text, nullable=False, default="Public")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    permissions = relationship(
        "Permission",
        primaryjoin="and_(Permission.asset_type == 'Contact', foreign(Permission.asset_id) == Contact.id)",
        viewonly=True,
        lazy="selectin",
    )

    @property
    def shared_user_ids(self) -> set[int]:
        return {p.user_id for p in self.permissions}

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "access": self.access,
        }
