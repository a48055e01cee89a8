"""City map models: locations and the plot points placed on them."""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from siegekeeper.domain.enums import LocationStatus, PlotPointStatus, sql_in

from .base import Base, TimestampCreatedMixin

if TYPE_CHECKING:
    from .campaign import Campaign


class Location(Base, TimestampCreatedMixin):
    """A named area of the city map.

    Attributes:
        id: Primary key
        campaign_id: Foreign key to campaign
        name: Location name
        status: controlled/contested/enemy/destroyed
        description: Optional description
        coord_x, coord_y, coord_width, coord_height: Map rectangle
    """

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=LocationStatus.CONTROLLED.value
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    coord_x: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coord_y: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coord_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coord_height: Mapped[int | None] = mapped_column(Integer, nullable=True)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="locations")
    plot_points: Mapped[list["PlotPoint"]] = relationship(
        "PlotPoint",
        back_populates="location",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [PlotPoint.created_at, PlotPoint.id],
    )

    __table_args__ = (
        CheckConstraint(f"status IN {sql_in(LocationStatus)}", name="ck_locations_status"),
        Index("idx_locations_campaign", "campaign_id"),
    )

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name='{self.name}', status='{self.status}')>"


class PlotPoint(Base, TimestampCreatedMixin):
    """A story hook pinned to a location."""

    __tablename__ = "plot_points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PlotPointStatus.ACTIVE.value
    )
    coord_x: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coord_y: Mapped[int | None] = mapped_column(Integer, nullable=True)

    location: Mapped["Location"] = relationship("Location", back_populates="plot_points")

    __table_args__ = (
        CheckConstraint(f"status IN {sql_in(PlotPointStatus)}", name="ck_plot_points_status"),
        Index("idx_plot_points_location", "location_id"),
    )

    def __repr__(self) -> str:
        return f"<PlotPoint(id={self.id}, name='{self.name}', status='{self.status}')>"
