"""Per-campaign key/value preferences (UI layout, module visibility ...)."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .campaign import Campaign


class UserPreference(Base, TimestampMixin):
    """One preference value, unique per ``(campaign_id, preference_key)``."""

    __tablename__ = "user_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    preference_key: Mapped[str] = mapped_column(String(100), nullable=False)
    preference_value: Mapped[Any] = mapped_column(JSON(none_as_null=True), nullable=True)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="preferences")

    __table_args__ = (
        UniqueConstraint("campaign_id", "preference_key", name="uq_user_preferences_key"),
    )

    def __repr__(self) -> str:
        return f"<UserPreference(campaign={self.campaign_id}, key='{self.preference_key}')>"
