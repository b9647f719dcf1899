"""
Challenge ladder engine.

Records a match between two lineups of a gauntlet and moves both lineups on
the ladder in one transaction: counters, points, streak, rank and the
progression trail either all change or none do.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rowing_backend.database.models import (
    GauntletMatch,
    GauntletPosition,
    GauntletStatus,
    MatchOutcome,
    ProgressionReason,
    StreakKind,
)
from rowing_backend.services import position_service, progression_service
from rowing_backend.utils.constants import (
    MAX_SERIALIZATION_RETRIES,
    RETRYABLE_SQLSTATES,
    TOP_RANK,
    WIN_RATE_SCALE,
)

logger = logging.getLogger(__name__)


class TransactionFailureError(RuntimeError):
    """Raised when the database fails while processing a match; nothing was saved."""


class GauntletClosedError(ValueError):
    """Raised when a match is submitted to a completed or cancelled gauntlet."""


# Statuses in which matches can still be recorded
OPEN_STATUSES = {GauntletStatus.SETUP, GauntletStatus.ACTIVE}


# ============================================================================
# Ladder Rules
# ============================================================================

def determine_match_result(set_wins: int, set_losses: int) -> MatchOutcome:
    """
    Outcome of a match from one side's point of view.

    Args:
        set_wins: Sets this side won
        set_losses: Sets this side lost

    Returns:
        MATCH_WIN, MATCH_LOSS or MATCH_DRAW
    """
    if set_wins > set_losses:
        return MatchOutcome.MATCH_WIN
    elif set_losses > set_wins:
        return MatchOutcome.MATCH_LOSS
    else:
        return MatchOutcome.MATCH_DRAW


def outcome_to_streak_kind(outcome: MatchOutcome) -> StreakKind:
    if outcome == MatchOutcome.MATCH_WIN:
        return StreakKind.WIN
    if outcome == MatchOutcome.MATCH_LOSS:
        return StreakKind.LOSS
    return StreakKind.DRAW


def calculate_streak(
    current_kind: StreakKind, current_length: int, outcome: MatchOutcome
) -> Tuple[StreakKind, int]:
    """Extend the streak if the outcome matches its kind, otherwise start a new one at 1."""
    new_kind = outcome_to_streak_kind(outcome)
    if current_kind == new_kind:
        return new_kind, current_length + 1
    return new_kind, 1


def calculate_new_rank(current_rank: int, outcome: MatchOutcome, total_positions: int) -> int:
    """
    Adjacent-step rule: a win moves up one rank, a loss moves down one.

    Wins at the top and losses at the bottom leave the rank unchanged, as do
    draws. ``total_positions`` is the number of positions in the gauntlet.
    """
    if outcome == MatchOutcome.MATCH_WIN and current_rank > TOP_RANK:
        return current_rank - 1
    if outcome == MatchOutcome.MATCH_LOSS and current_rank < total_positions:
        return current_rank + 1
    return current_rank


def calculate_win_rate(wins: int, total_matches: int) -> float:
    """Win rate as a percentage; 0 before the first match."""
    if total_matches == 0:
        return 0.0
    return wins / total_matches * WIN_RATE_SCALE


def match_to_dict(match: GauntletMatch) -> Dict:
    return {
        "id": match.id,
        "gauntlet_id": match.gauntlet_id,
        "side_a_lineup_id": match.side_a_lineup_id,
        "side_b_lineup_id": match.side_b_lineup_id,
        "workout": match.workout,
        "sets": match.sets,
        "side_a_set_wins": match.side_a_set_wins,
        "side_a_set_losses": match.side_a_set_losses,
        "side_b_set_wins": match.side_b_set_wins,
        "side_b_set_losses": match.side_b_set_losses,
        "match_date": match.match_date,
        "notes": match.notes,
        "created_at": match.created_at,
    }


# ============================================================================
# Position Bootstrap
# ============================================================================

async def ensure_position(
    session: AsyncSession, gauntlet_id: int, lineup_id: int
) -> GauntletPosition:
    """
    Get the lineup's position, creating it at the bottom of the ladder if missing.

    An existing position is returned untouched.
    """
    position = await position_service.get_position_or_none(session, gauntlet_id, lineup_id)
    if position is not None:
        return position

    next_rank = await position_service.get_max_rank(session, gauntlet_id) + 1
    logger.info(f"Lineup {lineup_id} joins gauntlet {gauntlet_id} ladder at rank {next_rank}")
    return await position_service.create_position(session, gauntlet_id, lineup_id, next_rank)


async def seed_positions(
    session: AsyncSession,
    gauntlet_id: int,
    challenger_lineup_ids: List[int],
    home_lineup_id: int,
) -> List[GauntletPosition]:
    """
    Give a newly configured gauntlet its starting ladder.

    Challengers take the top ranks in the order given and the home lineup
    starts below them. Each lineup takes the next free rank, so on an empty
    gauntlet that is 1..K for challengers and K+1 for the home lineup.
    Flushes but does not commit.

    Raises:
        DuplicatePositionError: If any lineup is already on the ladder
    """
    seeded = []
    for lineup_id in [*challenger_lineup_ids, home_lineup_id]:
        next_rank = await position_service.get_max_rank(session, gauntlet_id) + 1
        position = await position_service.create_position(
            session, gauntlet_id, lineup_id, next_rank
        )
        seeded.append(position)
    logger.info(f"Seeded {len(seeded)} ladder positions for gauntlet {gauntlet_id}")
    return seeded


# ============================================================================
# Match Result Processor
# ============================================================================

async def _apply_match_to_position(
    session: AsyncSession,
    position: GauntletPosition,
    outcome: MatchOutcome,
    set_wins: int,
    match: GauntletMatch,
) -> Dict:
    """Update one side's position for a finished match; append a progression if its rank moved."""
    wins = position.wins + (1 if outcome == MatchOutcome.MATCH_WIN else 0)
    losses = position.losses + (1 if outcome == MatchOutcome.MATCH_LOSS else 0)
    draws = position.draws + (1 if outcome == MatchOutcome.MATCH_DRAW else 0)
    total_matches = position.total_matches + 1

    streak_kind, streak_length = calculate_streak(
        position.streak_kind, position.streak_length, outcome
    )

    total_positions = await position_service.count_positions(session, position.gauntlet_id)
    old_rank = position.rank
    new_rank = calculate_new_rank(old_rank, outcome, total_positions)

    fields = {
        "wins": wins,
        "losses": losses,
        "draws": draws,
        "total_matches": total_matches,
        "win_rate": calculate_win_rate(wins, total_matches),
        "points": position.points + set_wins,
        "streak_kind": streak_kind,
        "streak_length": streak_length,
        "last_match_date": match.match_date,
    }
    if new_rank != old_rank:
        fields["previous_rank"] = old_rank
        fields["rank"] = new_rank

    await position_service.update_position(session, position, fields)

    progression = None
    if new_rank != old_rank:
        progression = await progression_service.append_progression(
            session,
            gauntlet_id=position.gauntlet_id,
            lineup_id=position.lineup_id,
            from_rank=old_rank,
            to_rank=new_rank,
            reason=ProgressionReason(outcome.value),
            match_id=match.id,
        )

    return {
        "lineup_id": position.lineup_id,
        "outcome": outcome.value,
        "position": position_service.position_to_dict(position),
        "progression": (
            progression_service.progression_to_dict(progression) if progression else None
        ),
    }


async def _process_match_once(
    session: AsyncSession,
    gauntlet_id: int,
    side_a_lineup_id: int,
    side_b_lineup_id: int,
    sets: int,
    side_a_set_wins: int,
    side_a_set_losses: int,
    match_date: date,
    workout: Optional[str],
    notes: Optional[str],
) -> Dict:
    gauntlet = await position_service.lock_gauntlet(session, gauntlet_id)
    if gauntlet.status not in OPEN_STATUSES:
        raise GauntletClosedError(
            f"Cannot record matches in a {gauntlet.status.value} gauntlet"
        )

    match = GauntletMatch(
        gauntlet_id=gauntlet_id,
        side_a_lineup_id=side_a_lineup_id,
        side_b_lineup_id=side_b_lineup_id,
        workout=workout,
        sets=sets,
        side_a_set_wins=side_a_set_wins,
        side_a_set_losses=side_a_set_losses,
        match_date=match_date,
        notes=notes,
    )
    session.add(match)
    await session.flush()

    # Side B's numbers are the complement of side A's
    side_a_outcome = determine_match_result(side_a_set_wins, side_a_set_losses)
    side_b_outcome = determine_match_result(match.side_b_set_wins, match.side_b_set_losses)

    # Each side joins (if new) and moves before the other side is looked at,
    # so side A's loss cap does not count a lineup that side B brings in.
    side_a_position = await ensure_position(session, gauntlet_id, side_a_lineup_id)
    side_a_update = await _apply_match_to_position(
        session, side_a_position, side_a_outcome, side_a_set_wins, match
    )
    side_b_position = await ensure_position(session, gauntlet_id, side_b_lineup_id)
    side_b_update = await _apply_match_to_position(
        session, side_b_position, side_b_outcome, match.side_b_set_wins, match
    )

    return {
        "match": match_to_dict(match),
        "side_a_update": side_a_update,
        "side_b_update": side_b_update,
    }


def _is_retryable(error: DBAPIError) -> bool:
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate in RETRYABLE_SQLSTATES


async def process_match(
    session: AsyncSession,
    gauntlet_id: int,
    side_a_lineup_id: int,
    side_b_lineup_id: int,
    sets: int,
    side_a_set_wins: int,
    side_a_set_losses: int,
    match_date: date,
    workout: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict:
    """
    Record a match and advance the ladder, committing everything at once.

    Steps, all inside one transaction:
    1. Lock the gauntlet row so concurrent submissions for it serialize,
       and refuse the match if the gauntlet is no longer open
    2. Save the match
    3. For side A, then side B: make sure the lineup has a position (new
       lineups start at the bottom), then update wins/losses/draws, win
       rate, points (sets won), streak and rank, and log a progression
       when the rank moved
    4. Commit

    Inputs are assumed valid: ``sets >= 1``, non-negative set counts and
    ``side_a_set_wins + side_a_set_losses <= sets``.

    Args:
        session: Database session
        gauntlet_id: Gauntlet the match belongs to
        side_a_lineup_id: First lineup
        side_b_lineup_id: Second lineup
        sets: Number of sets rowed
        side_a_set_wins: Sets won by side A (= sets lost by side B)
        side_a_set_losses: Sets lost by side A (= sets won by side B)
        match_date: Date the match was rowed
        workout: Optional workout description
        notes: Optional notes

    Returns:
        dict with "match", "side_a_update" and "side_b_update"

    Raises:
        GauntletNotFoundError: If the gauntlet does not exist
        GauntletClosedError: If the gauntlet is completed or cancelled
        DuplicatePositionError: If a position was created concurrently
        PositionNotFoundError: If a position vanished mid-transaction
        TransactionFailureError: If the database failed; nothing was saved
    """
    logger.info(
        f"Processing match in gauntlet {gauntlet_id}: lineup {side_a_lineup_id} vs "
        f"{side_b_lineup_id}, {side_a_set_wins}-{side_a_set_losses} of {sets} sets"
    )
    attempt = 0
    while True:
        attempt += 1
        try:
            result = await _process_match_once(
                session,
                gauntlet_id,
                side_a_lineup_id,
                side_b_lineup_id,
                sets,
                side_a_set_wins,
                side_a_set_losses,
                match_date,
                workout,
                notes,
            )
            await session.commit()
        except DBAPIError as e:
            await session.rollback()
            if _is_retryable(e) and attempt <= MAX_SERIALIZATION_RETRIES:
                logger.warning(
                    f"Serialization conflict processing match in gauntlet {gauntlet_id} "
                    f"(attempt {attempt}), retrying"
                )
                continue
            logger.error(f"Database error processing match in gauntlet {gauntlet_id}: {e}", exc_info=True)
            raise TransactionFailureError(f"Failed to process match: {e}") from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error processing match in gauntlet {gauntlet_id}: {e}", exc_info=True)
            raise TransactionFailureError(f"Failed to process match: {e}") from e
        except GauntletClosedError as e:
            await session.rollback()
            logger.warning(f"Rejected match for gauntlet {gauntlet_id}: {e}")
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Error processing match in gauntlet {gauntlet_id}: {e}", exc_info=True)
            raise

        side_a = result["side_a_update"]
        side_b = result["side_b_update"]
        logger.info(
            f"Match {result['match']['id']} processed: lineup {side_a['lineup_id']} "
            f"{side_a['outcome']} (rank {side_a['position']['rank']}), lineup "
            f"{side_b['lineup_id']} {side_b['outcome']} (rank {side_b['position']['rank']})"
        )
        return result
