"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from cardswap.models.holdings import HoldingRole


def _new_profile_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ProfileDB(Base):
    """
    A trading participant.

    Owned by its user and edited by the profile flows. The matching engine
    only touches last_match_check.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_profile_id)
    user_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str | None] = mapped_column(String(30), unique=True, nullable=True)
    display_name: Mapped[str] = mapped_column(String(100))
    contact_info: Mapped[str] = mapped_column(Text, default="")
    trading_locations: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_match_check: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ProfileDB(id={self.id}, display_name={self.display_name})>"


class CardDB(Base):
    """Reference card data. Immutable from the engine's point of view."""

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    set_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    collector_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    rarity: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, name={self.name})>"


class CardHoldingDB(Base):
    """
    One entry of a profile's HAVE or WANT list.

    The card_id index is what lets the calculator find counterparts by card
    instead of scanning every profile.
    """

    __tablename__ = "card_holdings"
    __table_args__ = (
        UniqueConstraint("profile_id", "card_id", "role", name="uq_profile_card_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )
    role: Mapped[HoldingRole] = mapped_column(
        Enum(HoldingRole, name="holding_role", values_callable=lambda e: [m.value for m in e])
    )
    quantity: Mapped[int | None] = mapped_column(Integer, default=1, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<CardHoldingDB(card={self.card_id}, role={self.role.value}, qty={self.quantity})>"


class MatchRecordDB(Base):
    """
    A persisted match, seen from the owner's side.

    Rows are directional: (owner=P1, counterpart=P2) and (owner=P2,
    counterpart=P1) are independent, each with its own unread flag.
    """

    __tablename__ = "user_matches"
    __table_args__ = (
        UniqueConstraint(
            "owner_profile_id", "counterpart_profile_id", name="uq_match_owner_counterpart"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    counterpart_profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    match_count: Mapped[int] = mapped_column(Integer)
    is_new: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    counterpart: Mapped["ProfileDB"] = relationship(
        foreign_keys=[counterpart_profile_id], lazy="raise"
    )

    def __repr__(self) -> str:
        return (
            f"<MatchRecordDB(owner={self.owner_profile_id}, "
            f"counterpart={self.counterpart_profile_id}, count={self.match_count}, "
            f"is_new={self.is_new})>"
        )
