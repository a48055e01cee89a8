"""Campaign model, the aggregate root of every other table."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .combatant import Combatant
    from .map import Location
    from .monster import Monster
    from .preference import UserPreference
    from .siege import SiegeState


class Campaign(Base, TimestampMixin):
    """One tabletop campaign and everything it owns.

    Deleting a campaign removes all owned rows through ``ON DELETE CASCADE``
    foreign keys; the ORM relationships use ``passive_deletes`` so the
    database does the work.

    Attributes:
        id: Primary key
        name: Display name (not unique; duplicates are allowed)
        created_at: Creation time
        updated_at: Last-modified time, bumped by touches
    """

    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    combatants: Mapped[list["Combatant"]] = relationship(
        "Combatant", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )
    monsters: Mapped[list["Monster"]] = relationship(
        "Monster", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )
    siege_state: Mapped[Optional["SiegeState"]] = relationship(
        "SiegeState",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
    locations: Mapped[list["Location"]] = relationship(
        "Location", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )
    preferences: Mapped[list["UserPreference"]] = relationship(
        "UserPreference",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name='{self.name}')>"
