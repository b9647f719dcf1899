"""
Gauntlet service layer.

Handles gauntlet setup (lineups plus the starting ladder), lifecycle status
changes, teardown, and the read paths for lineups and matches.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from rowing_backend.database.models import (
    Gauntlet,
    GauntletLineup,
    GauntletMatch,
    GauntletPosition,
    GauntletStatus,
    BoatType,
    LadderProgression,
)
from rowing_backend.services import ladder_service, position_service
from rowing_backend.services.ladder_service import OPEN_STATUSES
from rowing_backend.services.position_service import GauntletNotFoundError

logger = logging.getLogger(__name__)


# --- Custom exceptions ---


class LineupNotFoundError(ValueError):
    """Raised when a lineup does not exist in the given gauntlet."""


class InvalidStatusTransitionError(ValueError):
    """Raised when a gauntlet status change is not allowed."""


# Allowed lifecycle moves: setup -> active -> completed | cancelled
STATUS_TRANSITIONS = {
    GauntletStatus.SETUP: {GauntletStatus.ACTIVE, GauntletStatus.CANCELLED},
    GauntletStatus.ACTIVE: {GauntletStatus.COMPLETED, GauntletStatus.CANCELLED},
    GauntletStatus.COMPLETED: set(),
    GauntletStatus.CANCELLED: set(),
}


def gauntlet_to_dict(gauntlet: Gauntlet) -> Dict:
    return {
        "id": gauntlet.id,
        "name": gauntlet.name,
        "description": gauntlet.description,
        "boat_type": gauntlet.boat_type.value,
        "created_by": gauntlet.created_by,
        "status": gauntlet.status.value,
        "created_at": gauntlet.created_at,
        "updated_at": gauntlet.updated_at,
    }


def lineup_to_dict(lineup: GauntletLineup) -> Dict:
    return {
        "id": lineup.id,
        "gauntlet_id": lineup.gauntlet_id,
        "name": lineup.name,
        "boat_id": lineup.boat_id,
        "is_home_lineup": lineup.is_home_lineup,
    }


async def _get_gauntlet_or_raise(session: AsyncSession, gauntlet_id: int) -> Gauntlet:
    result = await session.execute(select(Gauntlet).where(Gauntlet.id == gauntlet_id))
    gauntlet = result.scalar_one_or_none()
    if gauntlet is None:
        raise GauntletNotFoundError(f"Gauntlet {gauntlet_id} not found")
    return gauntlet


async def create_gauntlet(
    session: AsyncSession,
    name: str,
    boat_type: BoatType,
    home_lineup: Dict,
    challenger_lineups: List[Dict],
    description: Optional[str] = None,
    created_by: Optional[int] = None,
    status: GauntletStatus = GauntletStatus.SETUP,
) -> Dict:
    """
    Create a gauntlet with its lineups and starting ladder in one transaction.

    Challengers are ranked 1..K in the order given; the home lineup starts
    at K+1.

    Args:
        session: Database session
        name: Gauntlet name
        boat_type: Boat class all lineups row in
        home_lineup: {"name", "boat_id"} for the lineup that issued the gauntlet
        challenger_lineups: List of {"name", "boat_id"}
        description: Optional description
        created_by: Athlete ID of the creator
        status: Initial status (setup or active)

    Returns:
        Gauntlet dict with "lineups" and "ladder"
    """
    status = GauntletStatus(status)
    if status not in OPEN_STATUSES:
        raise ValueError(f"A new gauntlet cannot start as {status.value}")

    gauntlet = Gauntlet(
        name=name,
        description=description,
        boat_type=BoatType(boat_type),
        created_by=created_by,
        status=status,
    )
    session.add(gauntlet)
    await session.flush()  # Get the gauntlet ID

    home = GauntletLineup(
        gauntlet_id=gauntlet.id,
        name=home_lineup.get("name"),
        boat_id=home_lineup.get("boat_id"),
        is_home_lineup=True,
    )
    session.add(home)
    challengers = [
        GauntletLineup(
            gauntlet_id=gauntlet.id,
            name=challenger.get("name"),
            boat_id=challenger.get("boat_id"),
            is_home_lineup=False,
        )
        for challenger in challenger_lineups
    ]
    session.add_all(challengers)
    await session.flush()

    await ladder_service.seed_positions(
        session, gauntlet.id, [c.id for c in challengers], home.id
    )
    await session.commit()

    logger.info(
        f"Created gauntlet {gauntlet.id} ({gauntlet.boat_type.value}) with "
        f"{len(challengers)} challengers"
    )
    result = gauntlet_to_dict(gauntlet)
    result["lineups"] = [lineup_to_dict(home)] + [lineup_to_dict(c) for c in challengers]
    result["ladder"] = await position_service.list_ladder(session, gauntlet.id)
    return result


async def get_gauntlet(session: AsyncSession, gauntlet_id: int) -> Optional[Dict]:
    """Get a gauntlet with its lineups, or None."""
    result = await session.execute(select(Gauntlet).where(Gauntlet.id == gauntlet_id))
    gauntlet = result.scalar_one_or_none()
    if gauntlet is None:
        return None

    lineups_result = await session.execute(
        select(GauntletLineup)
        .where(GauntletLineup.gauntlet_id == gauntlet_id)
        .order_by(GauntletLineup.id.asc())
    )
    data = gauntlet_to_dict(gauntlet)
    data["lineups"] = [lineup_to_dict(l) for l in lineups_result.scalars().all()]
    return data


async def list_gauntlets(
    session: AsyncSession, status: Optional[GauntletStatus] = None
) -> List[Dict]:
    """List gauntlets, newest first, optionally filtered by status."""
    query = select(Gauntlet)
    if status is not None:
        query = query.where(Gauntlet.status == GauntletStatus(status))
    result = await session.execute(query.order_by(Gauntlet.created_at.desc(), Gauntlet.id.desc()))
    return [gauntlet_to_dict(g) for g in result.scalars().all()]


async def update_gauntlet_status(
    session: AsyncSession, gauntlet_id: int, new_status: GauntletStatus
) -> Dict:
    """
    Move a gauntlet along its lifecycle.

    Raises:
        GauntletNotFoundError: If the gauntlet does not exist
        InvalidStatusTransitionError: If the move is not allowed
    """
    gauntlet = await _get_gauntlet_or_raise(session, gauntlet_id)
    new_status = GauntletStatus(new_status)
    if new_status not in STATUS_TRANSITIONS[gauntlet.status]:
        raise InvalidStatusTransitionError(
            f"Cannot change gauntlet status from {gauntlet.status.value} to {new_status.value}"
        )

    gauntlet.status = new_status
    await session.commit()
    logger.info(f"Gauntlet {gauntlet_id} is now {new_status.value}")
    return gauntlet_to_dict(gauntlet)


async def delete_gauntlet(session: AsyncSession, gauntlet_id: int) -> Dict:
    """
    Tear down a gauntlet and everything on its ladder.

    Returns:
        Counts of deleted rows per table
    """
    await _get_gauntlet_or_raise(session, gauntlet_id)

    # Children first so this works without ON DELETE CASCADE support
    counts = {}
    for label, model in (
        ("progressions", LadderProgression),
        ("matches", GauntletMatch),
        ("positions", GauntletPosition),
        ("lineups", GauntletLineup),
    ):
        result = await session.execute(delete(model).where(model.gauntlet_id == gauntlet_id))
        counts[label] = result.rowcount or 0
    await session.execute(delete(Gauntlet).where(Gauntlet.id == gauntlet_id))
    await session.commit()

    logger.info(f"Deleted gauntlet {gauntlet_id}: {counts}")
    return counts


async def add_lineup(
    session: AsyncSession,
    gauntlet_id: int,
    name: Optional[str] = None,
    boat_id: Optional[int] = None,
) -> Dict:
    """
    Register a late entrant. It gets a ladder position with its first match.
    """
    gauntlet = await _get_gauntlet_or_raise(session, gauntlet_id)
    if gauntlet.status not in OPEN_STATUSES:
        raise ValueError(f"Cannot add lineups to a {gauntlet.status.value} gauntlet")

    lineup = GauntletLineup(
        gauntlet_id=gauntlet_id, name=name, boat_id=boat_id, is_home_lineup=False
    )
    session.add(lineup)
    await session.commit()
    return lineup_to_dict(lineup)


async def get_lineup(session: AsyncSession, lineup_id: int) -> Optional[Dict]:
    result = await session.execute(select(GauntletLineup).where(GauntletLineup.id == lineup_id))
    lineup = result.scalar_one_or_none()
    return lineup_to_dict(lineup) if lineup else None


async def validate_match_lineups(
    session: AsyncSession, gauntlet_id: int, lineup_ids: List[int]
) -> None:
    """
    Check that every lineup belongs to the gauntlet.

    Raises:
        LineupNotFoundError: Naming the first lineup that does not
    """
    result = await session.execute(
        select(GauntletLineup.id).where(
            GauntletLineup.gauntlet_id == gauntlet_id,
            GauntletLineup.id.in_(lineup_ids),
        )
    )
    found = set(result.scalars().all())
    for lineup_id in lineup_ids:
        if lineup_id not in found:
            raise LineupNotFoundError(f"Lineup {lineup_id} not found in gauntlet {gauntlet_id}")


async def list_matches(session: AsyncSession, gauntlet_id: int) -> List[Dict]:
    """List a gauntlet's matches, most recent first."""
    result = await session.execute(
        select(GauntletMatch)
        .where(GauntletMatch.gauntlet_id == gauntlet_id)
        .order_by(GauntletMatch.match_date.desc(), GauntletMatch.id.desc())
    )
    return [ladder_service.match_to_dict(m) for m in result.scalars().all()]


async def get_match(session: AsyncSession, match_id: int) -> Optional[Dict]:
    result = await session.execute(select(GauntletMatch).where(GauntletMatch.id == match_id))
    match = result.scalar_one_or_none()
    return ladder_service.match_to_dict(match) if match else None
