"""Issued session tokens - the revocation ledger."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from sessionauth.models.base import BaseModel


class TokenRecord(BaseModel):
    """One row per issued token.

    ``is_deleted`` is set on logout and is permanent. ``is_expired`` is set by
    the sweep or by validation when ``expires_at`` has passed. Rows are never
    removed so the table doubles as an audit trail.
    """

    __tablename__ = "tokens"

    # Full signed token; lookup key for validation
    token: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_expired: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_tokens_user_id_active", "user_id", "is_deleted", "is_expired"),
        Index("ix_tokens_expires_at_unexpired", "expires_at", "is_expired"),
    )

    def __repr__(self) -> str:
        return f"<TokenRecord user={self.user_id} expired={self.is_expired} deleted={self.is_deleted}>"
