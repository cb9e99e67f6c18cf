"""Admin profile ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_portal.common.constants import DEFAULT_ADMIN_TITLE
from hr_portal.database import Base

if TYPE_CHECKING:
    from hr_portal.auth.models import UserAccount


class Admin(Base):
    """HR staff profile; ``role`` is a display title, access comes from the account."""

    __tablename__ = "admins"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("user_accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(sa.String(100), default=DEFAULT_ADMIN_TITLE, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=sa.func.now(),
    )

    account: Mapped[UserAccount] = relationship(back_populates="admin")

    def __repr__(self) -> str:
        return f"<Admin {self.email!r}>"
