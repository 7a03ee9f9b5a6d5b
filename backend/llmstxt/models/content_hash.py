"""ContentHash model for change detection between regenerations."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from llmstxt.database import Base


class ContentHash(Base):
    """Hash of the most recently generated llms.txt for a URL."""

    __tablename__ = "content_hashes"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    url: Mapped[str] = mapped_column(String(2048), unique=True, index=True)
    content_hash: Mapped[str] = mapped_column(String(64))
    content_length: Mapped[int] = mapped_column(Integer, default=0)

    # Drift tracking
    change_count: Mapped[int] = mapped_column(Integer, default=0)
    is_changed: Mapped[bool] = mapped_column(Boolean, default=False)
    last_checked: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    last_changed: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        """Serialize for the pending-changes listing."""
        return {
            "url": self.url,
            "content_hash": self.content_hash,
            "content_length": self.content_length,
            "change_count": self.change_count,
            "last_changed": self.last_changed.isoformat() if self.last_changed else None,
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
        }
