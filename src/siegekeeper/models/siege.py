"""Siege state and siege note models."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampCreatedMixin, TimestampMixin

if TYPE_CHECKING:
    from .campaign import Campaign


class SiegeState(Base, TimestampMixin):
    """Siege metrics for a campaign (exactly one row per campaign).

    Attributes:
        id: Primary key
        campaign_id: Foreign key to campaign (unique)
        wall_integrity: Percentage 0-100
        defender_morale: Percentage 0-100
        supplies: Percentage 0-100
        day_of_siege: Day counter starting at 1
        custom_metrics: JSON map of table-specific metrics
    """

    __tablename__ = "siege_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )

    wall_integrity: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    defender_morale: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    supplies: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    day_of_siege: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    custom_metrics: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="siege_state")
    notes: Mapped[list["SiegeNote"]] = relationship(
        "SiegeNote",
        back_populates="siege_state",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [SiegeNote.created_at, SiegeNote.id],
    )

    __table_args__ = (
        CheckConstraint(
            "wall_integrity >= 0 AND wall_integrity <= 100", name="ck_siege_state_wall_integrity"
        ),
        CheckConstraint(
            "defender_morale >= 0 AND defender_morale <= 100",
            name="ck_siege_state_defender_morale",
        ),
        CheckConstraint("supplies >= 0 AND supplies <= 100", name="ck_siege_state_supplies"),
        CheckConstraint("day_of_siege >= 1", name="ck_siege_state_day"),
        UniqueConstraint("campaign_id", name="uq_siege_state_campaign"),
    )

    def __repr__(self) -> str:
        return (
            f"<SiegeState(id={self.id}, campaign={self.campaign_id}, "
            f"day={self.day_of_siege}, walls={self.wall_integrity})>"
        )


class SiegeNote(Base, TimestampCreatedMixin):
    """Narrative note recorded during a siege."""

    __tablename__ = "siege_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    siege_state_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("siege_state.id", ondelete="CASCADE"), nullable=False
    )
    note_text: Mapped[str] = mapped_column(Text, nullable=False)

    siege_state: Mapped["SiegeState"] = relationship("SiegeState", back_populates="notes")

    __table_args__ = (Index("idx_siege_notes_siege_state", "siege_state_id"),)

    def __repr__(self) -> str:
        return f"<SiegeNote(id={self.id}, siege_state={self.siege_state_id})>"
