"""
Position store for the challenge ladder.

Holds one GauntletPosition per (gauntlet, lineup). Every function here works
inside the caller's transaction: writes are flushed, never committed.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rowing_backend.database.models import (
    Gauntlet,
    GauntletLineup,
    GauntletPosition,
    StreakKind,
)

logger = logging.getLogger(__name__)


# --- Custom exceptions ---


class DuplicatePositionError(ValueError):
    """Raised when a position already exists for a (gauntlet, lineup) pair."""


class PositionNotFoundError(ValueError):
    """Raised when a position disappears before it could be updated."""


class GauntletNotFoundError(ValueError):
    """Raised when a gauntlet does not exist."""


# Columns update_position is allowed to touch
UPDATABLE_FIELDS = frozenset(
    {
        "rank",
        "previous_rank",
        "wins",
        "losses",
        "draws",
        "total_matches",
        "win_rate",
        "points",
        "streak_kind",
        "streak_length",
        "last_match_date",
    }
)


UNIQUE_LINEUP_CONSTRAINT = "uq_gauntlet_positions_gauntlet_lineup"


def _is_duplicate_position(error: IntegrityError) -> bool:
    """
    True if the error is a violation of the one-position-per-lineup constraint.

    PostgreSQL names the constraint in the message; SQLite lists its columns instead.
    """
    message = str(error.orig)
    if UNIQUE_LINEUP_CONSTRAINT in message:
        return True
    return (
        "UNIQUE constraint failed" in message
        and "gauntlet_positions.gauntlet_id" in message
        and "gauntlet_positions.lineup_id" in message
    )


def position_to_dict(position: GauntletPosition) -> Dict:
    """Snapshot a position as a plain dict."""
    streak_kind = position.streak_kind
    return {
        "id": position.id,
        "gauntlet_id": position.gauntlet_id,
        "lineup_id": position.lineup_id,
        "rank": position.rank,
        "previous_rank": position.previous_rank,
        "wins": position.wins,
        "losses": position.losses,
        "draws": position.draws,
        "total_matches": position.total_matches,
        "win_rate": position.win_rate,
        "points": position.points,
        "streak_kind": streak_kind.value if streak_kind else StreakKind.NONE.value,
        "streak_length": position.streak_length,
        "last_match_date": position.last_match_date,
    }


async def lock_gauntlet(session: AsyncSession, gauntlet_id: int) -> Gauntlet:
    """
    Lock the gauntlet row for the rest of the transaction.

    Concurrent match submissions for the same gauntlet queue up behind this
    lock, so max-rank reads and rank updates never interleave.
    The row is reloaded, so the returned status is the committed one even if
    the session loaded the gauntlet earlier.
    """
    result = await session.execute(
        select(Gauntlet)
        .where(Gauntlet.id == gauntlet_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    gauntlet = result.scalar_one_or_none()
    if gauntlet is None:
        raise GauntletNotFoundError(f"Gauntlet {gauntlet_id} not found")
    return gauntlet


async def get_position_or_none(
    session: AsyncSession, gauntlet_id: int, lineup_id: int
) -> Optional[GauntletPosition]:
    """Get the position for a lineup in a gauntlet, or None."""
    result = await session.execute(
        select(GauntletPosition).where(
            GauntletPosition.gauntlet_id == gauntlet_id,
            GauntletPosition.lineup_id == lineup_id,
        )
    )
    return result.scalar_one_or_none()


async def get_max_rank(session: AsyncSession, gauntlet_id: int) -> int:
    """Return the highest rank number in a gauntlet, or 0 if it has no positions."""
    result = await session.execute(
        select(func.max(GauntletPosition.rank)).where(
            GauntletPosition.gauntlet_id == gauntlet_id
        )
    )
    return result.scalar() or 0


async def count_positions(session: AsyncSession, gauntlet_id: int) -> int:
    """Return the number of positions in a gauntlet."""
    result = await session.execute(
        select(func.count(GauntletPosition.id)).where(
            GauntletPosition.gauntlet_id == gauntlet_id
        )
    )
    return result.scalar() or 0


async def create_position(
    session: AsyncSession, gauntlet_id: int, lineup_id: int, rank: int
) -> GauntletPosition:
    """
    Create a fresh position with zeroed counters.

    Raises:
        DuplicatePositionError: If the lineup already has a position in this gauntlet
    """
    existing = await get_position_or_none(session, gauntlet_id, lineup_id)
    if existing is not None:
        raise DuplicatePositionError(
            f"Lineup {lineup_id} already has a position in gauntlet {gauntlet_id}"
        )

    position = GauntletPosition(
        gauntlet_id=gauntlet_id,
        lineup_id=lineup_id,
        rank=rank,
        previous_rank=None,
        wins=0,
        losses=0,
        draws=0,
        total_matches=0,
        win_rate=0.0,
        points=0,
        streak_kind=StreakKind.NONE,
        streak_length=0,
    )
    session.add(position)
    try:
        await session.flush()
    except IntegrityError as e:
        if not _is_duplicate_position(e):
            raise
        # Another transaction created it between our check and the insert
        raise DuplicatePositionError(
            f"Lineup {lineup_id} already has a position in gauntlet {gauntlet_id}"
        ) from e

    logger.debug(f"Created position for lineup {lineup_id} in gauntlet {gauntlet_id} at rank {rank}")
    return position


async def update_position(
    session: AsyncSession, position: GauntletPosition, fields: Dict
) -> GauntletPosition:
    """
    Apply field changes to a position and flush them.

    Raises:
        PositionNotFoundError: If the row no longer exists
        ValueError: If an unknown field is passed
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update position fields: {', '.join(sorted(unknown))}")

    result = await session.execute(
        select(GauntletPosition.id).where(GauntletPosition.id == position.id)
    )
    if result.scalar_one_or_none() is None:
        raise PositionNotFoundError(f"Position {position.id} not found")

    for key, value in fields.items():
        setattr(position, key, value)
    await session.flush()
    return position


async def list_ladder(session: AsyncSession, gauntlet_id: int) -> List[Dict]:
    """List a gauntlet's positions ordered from the top of the ladder down."""
    result = await session.execute(
        select(GauntletPosition, GauntletLineup)
        .join(GauntletLineup, GauntletLineup.id == GauntletPosition.lineup_id)
        .where(GauntletPosition.gauntlet_id == gauntlet_id)
        .order_by(GauntletPosition.rank.asc(), GauntletPosition.id.asc())
    )
    ladder = []
    for position, lineup in result.all():
        entry = position_to_dict(position)
        entry["lineup_name"] = lineup.name
        entry["boat_id"] = lineup.boat_id
        entry["is_home_lineup"] = lineup.is_home_lineup
        ladder.append(entry)
    return ladder
