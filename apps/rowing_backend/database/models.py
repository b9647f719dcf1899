"""
SQLAlchemy ORM models for the rowing club challenge ladder.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rowing_backend.database.db import Base
from rowing_backend.utils.datetime_utils import utcnow


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class GauntletStatus(str, enum.Enum):
    """Gauntlet lifecycle status."""

    SETUP = "setup"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BoatType(str, enum.Enum):
    """Boat class a gauntlet is restricted to."""

    SINGLE = "1x"
    DOUBLE = "2x"
    PAIR = "2-"
    QUAD = "4x"
    COXED_FOUR = "4+"
    EIGHT = "8+"


class MatchOutcome(str, enum.Enum):
    """Result of a match from one side's point of view."""

    MATCH_WIN = "match_win"
    MATCH_LOSS = "match_loss"
    MATCH_DRAW = "match_draw"


class ProgressionReason(str, enum.Enum):
    """Why a lineup's rank changed."""

    MATCH_WIN = "match_win"
    MATCH_LOSS = "match_loss"
    MATCH_DRAW = "match_draw"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    NEW_ENTRANT = "new_entrant"


class StreakKind(str, enum.Enum):
    """Kind of the current run of same-kind outcomes."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"
    NONE = "none"


class Gauntlet(Base):
    """A ranking context holding one ladder of lineups."""

    __tablename__ = "gauntlets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    boat_type = Column(
        Enum(BoatType, name="boattype", values_callable=_enum_values), nullable=False
    )
    created_by = Column(Integer, nullable=True)  # Athlete ID, owned by the roster subsystem
    status = Column(
        Enum(GauntletStatus, name="gauntletstatus", values_callable=_enum_values),
        default=GauntletStatus.SETUP,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    # Relationships (deleting a gauntlet tears down its whole ladder)
    lineups = relationship(
        "GauntletLineup", back_populates="gauntlet", cascade="all, delete-orphan", passive_deletes=True
    )
    positions = relationship(
        "GauntletPosition", back_populates="gauntlet", cascade="all, delete-orphan", passive_deletes=True
    )
    matches = relationship(
        "GauntletMatch", back_populates="gauntlet", cascade="all, delete-orphan", passive_deletes=True
    )
    progressions = relationship(
        "LadderProgression", back_populates="gauntlet", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_gauntlets_created_by", "created_by"),
        Index("idx_gauntlets_status", "status"),
        Index("idx_gauntlets_boat_type", "boat_type"),
    )


class GauntletLineup(Base):
    """A crewed boat taking part in a gauntlet."""

    __tablename__ = "gauntlet_lineups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gauntlet_id = Column(
        Integer, ForeignKey("gauntlets.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=True)
    boat_id = Column(Integer, nullable=True)  # Boat ID, owned by the fleet subsystem
    is_home_lineup = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    gauntlet = relationship("Gauntlet", back_populates="lineups")
    position = relationship(
        "GauntletPosition", back_populates="lineup", uselist=False, passive_deletes=True
    )

    __table_args__ = (
        Index("idx_gauntlet_lineups_gauntlet_id", "gauntlet_id"),
        Index("idx_gauntlet_lineups_boat_id", "boat_id"),
    )


class GauntletPosition(Base):
    """A lineup's rank and aggregate record within one gauntlet."""

    __tablename__ = "gauntlet_positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gauntlet_id = Column(
        Integer, ForeignKey("gauntlets.id", ondelete="CASCADE"), nullable=False
    )
    lineup_id = Column(
        Integer, ForeignKey("gauntlet_lineups.id", ondelete="CASCADE"), nullable=False
    )
    rank = Column(Integer, nullable=False)  # 1 = top of ladder
    previous_rank = Column(Integer, nullable=True)  # NULL until the rank first changes
    wins = Column(Integer, default=0, nullable=False)
    losses = Column(Integer, default=0, nullable=False)
    draws = Column(Integer, default=0, nullable=False)
    total_matches = Column(Integer, default=0, nullable=False)
    win_rate = Column(Float, default=0.0, nullable=False)  # Percentage, 0-100
    points = Column(Integer, default=0, nullable=False)  # Sets won across all matches
    streak_kind = Column(
        Enum(StreakKind, name="streakkind", values_callable=_enum_values),
        default=StreakKind.NONE,
        nullable=False,
    )
    streak_length = Column(Integer, default=0, nullable=False)
    last_match_date = Column(Date, nullable=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    gauntlet = relationship("Gauntlet", back_populates="positions")
    lineup = relationship("GauntletLineup", back_populates="position")

    __table_args__ = (
        UniqueConstraint("gauntlet_id", "lineup_id", name="uq_gauntlet_positions_gauntlet_lineup"),
        CheckConstraint("rank >= 1", name="ck_gauntlet_positions_rank_positive"),
        CheckConstraint(
            "wins >= 0 AND losses >= 0 AND draws >= 0 AND points >= 0 AND streak_length >= 0",
            name="ck_gauntlet_positions_counters_non_negative",
        ),
        CheckConstraint(
            "wins + losses + draws = total_matches",
            name="ck_gauntlet_positions_total_matches",
        ),
        Index("idx_gauntlet_positions_gauntlet_rank", "gauntlet_id", "rank"),
        Index("idx_gauntlet_positions_lineup_id", "lineup_id"),
    )


class GauntletMatch(Base):
    """One immutable contest between two lineups, scored in sets."""

    __tablename__ = "gauntlet_matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gauntlet_id = Column(
        Integer, ForeignKey("gauntlets.id", ondelete="CASCADE"), nullable=False
    )
    side_a_lineup_id = Column(
        Integer, ForeignKey("gauntlet_lineups.id", ondelete="CASCADE"), nullable=False
    )
    side_b_lineup_id = Column(
        Integer, ForeignKey("gauntlet_lineups.id", ondelete="CASCADE"), nullable=False
    )
    workout = Column(Text, nullable=True)  # e.g. "4x500m"
    sets = Column(Integer, nullable=False)
    side_a_set_wins = Column(Integer, default=0, nullable=False)
    side_a_set_losses = Column(Integer, default=0, nullable=False)
    match_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    gauntlet = relationship("Gauntlet", back_populates="matches")

    __table_args__ = (
        CheckConstraint("sets >= 1", name="ck_gauntlet_matches_sets_positive"),
        CheckConstraint(
            "side_a_set_wins >= 0 AND side_a_set_losses >= 0",
            name="ck_gauntlet_matches_set_counts_non_negative",
        ),
        Index("idx_gauntlet_matches_gauntlet_id", "gauntlet_id"),
        Index("idx_gauntlet_matches_match_date", "match_date"),
    )

    @property
    def side_b_set_wins(self) -> int:
        return self.side_a_set_losses

    @property
    def side_b_set_losses(self) -> int:
        return self.side_a_set_wins


class LadderProgression(Base):
    """Append-only audit entry for one rank change."""

    __tablename__ = "ladder_progressions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gauntlet_id = Column(
        Integer, ForeignKey("gauntlets.id", ondelete="CASCADE"), nullable=False
    )
    lineup_id = Column(
        Integer, ForeignKey("gauntlet_lineups.id", ondelete="CASCADE"), nullable=False
    )
    from_rank = Column(Integer, nullable=False)
    to_rank = Column(Integer, nullable=False)
    delta = Column(Integer, nullable=False)  # to_rank - from_rank; negative = moved up
    reason = Column(
        Enum(ProgressionReason, name="progressionreason", values_callable=_enum_values),
        nullable=False,
    )
    match_id = Column(
        Integer, ForeignKey("gauntlet_matches.id", ondelete="SET NULL"), nullable=True
    )
    notes = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    gauntlet = relationship("Gauntlet", back_populates="progressions")

    __table_args__ = (
        Index("idx_ladder_progressions_gauntlet_id", "gauntlet_id"),
        Index("idx_ladder_progressions_lineup_id", "lineup_id"),
        Index("idx_ladder_progressions_match_id", "match_id"),
    )
