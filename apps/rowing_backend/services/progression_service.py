"""
Progression log: append-only history of ladder rank changes.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rowing_backend.database.models import LadderProgression, ProgressionReason
from rowing_backend.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


def progression_to_dict(progression: LadderProgression) -> Dict:
    return {
        "id": progression.id,
        "gauntlet_id": progression.gauntlet_id,
        "lineup_id": progression.lineup_id,
        "from_rank": progression.from_rank,
        "to_rank": progression.to_rank,
        "delta": progression.delta,
        "reason": progression.reason.value,
        "match_id": progression.match_id,
        "notes": progression.notes,
        "occurred_at": progression.occurred_at,
    }


async def append_progression(
    session: AsyncSession,
    gauntlet_id: int,
    lineup_id: int,
    from_rank: int,
    to_rank: int,
    reason: ProgressionReason,
    match_id: Optional[int] = None,
    notes: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
) -> LadderProgression:
    """
    Record one rank change. Flushes but does not commit.

    Args:
        session: Database session (the caller's open transaction)
        gauntlet_id: Gauntlet the ladder belongs to
        lineup_id: Lineup whose rank changed
        from_rank: Rank before the change
        to_rank: Rank after the change
        reason: Why the rank changed
        match_id: Match that caused the change, if any
        notes: Optional free text
        occurred_at: Defaults to now

    Returns:
        The new LadderProgression
    """
    progression = LadderProgression(
        gauntlet_id=gauntlet_id,
        lineup_id=lineup_id,
        from_rank=from_rank,
        to_rank=to_rank,
        delta=to_rank - from_rank,
        reason=ProgressionReason(reason),
        match_id=match_id,
        notes=notes,
        occurred_at=occurred_at or utcnow(),
    )
    session.add(progression)
    await session.flush()
    logger.debug(
        f"Lineup {lineup_id} in gauntlet {gauntlet_id} moved {from_rank} -> {to_rank} ({progression.reason.value})"
    )
    return progression


async def list_progressions_for_gauntlet(session: AsyncSession, gauntlet_id: int) -> List[Dict]:
    """Rank history for a whole gauntlet, newest first."""
    result = await session.execute(
        select(LadderProgression)
        .where(LadderProgression.gauntlet_id == gauntlet_id)
        .order_by(LadderProgression.occurred_at.desc(), LadderProgression.id.desc())
    )
    return [progression_to_dict(p) for p in result.scalars().all()]


async def list_progressions_for_lineup(session: AsyncSession, lineup_id: int) -> List[Dict]:
    """Rank history for one lineup, newest first."""
    result = await session.execute(
        select(LadderProgression)
        .where(LadderProgression.lineup_id == lineup_id)
        .order_by(LadderProgression.occurred_at.desc(), LadderProgression.id.desc())
    )
    return [progression_to_dict(p) for p in result.scalars().all()]
