"""Restaurant model: the tenant whose menu is published behind a QR code."""

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Restaurant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A restaurant owned by a single user."""

    __tablename__ = "restaurants"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="INR")
    theme_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#f97316")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    qr_code_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="restaurants", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    subscription: Mapped["Subscription | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="restaurant",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name={self.name!r}, slug={self.slug!r})>"
