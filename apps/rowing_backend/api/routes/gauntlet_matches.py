"""Gauntlet match route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rowing_backend.api.auth_dependencies import require_user
from rowing_backend.api.routes import limiter
from rowing_backend.database.db import get_db_session
from rowing_backend.models.schemas import (
    CreateGauntletMatchRequest,
    GauntletMatchResponse,
    ProcessMatchResponse,
)
from rowing_backend.services import gauntlet_service, ladder_service
from rowing_backend.services.gauntlet_service import LineupNotFoundError
from rowing_backend.services.ladder_service import (
    GauntletClosedError,
    OPEN_STATUSES,
    TransactionFailureError,
)
from rowing_backend.services.position_service import (
    DuplicatePositionError,
    GauntletNotFoundError,
    PositionNotFoundError,
)
from rowing_backend.utils.constants import MATCH_SUBMISSION_RATE_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/gauntlet-matches", response_model=ProcessMatchResponse, status_code=201)
@limiter.limit(MATCH_SUBMISSION_RATE_LIMIT)
async def create_gauntlet_match(
    request: Request,
    payload: CreateGauntletMatchRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Record a match between two lineups and update the ladder.

    Request body:
        {
            "gauntlet_id": 1,
            "side_a_lineup_id": 3,
            "side_b_lineup_id": 2,
            "sets": 5,
            "side_a_set_wins": 3,
            "side_a_set_losses": 2,
            "match_date": "2026-03-14",
            "workout": "5x500m",   // Optional
            "notes": "Headwind"    // Optional
        }

    Returns:
        The match plus each side's updated position and rank change, if any.
        Nothing is saved unless both sides update.
    """
    try:
        gauntlet = await gauntlet_service.get_gauntlet(session, payload.gauntlet_id)
        if not gauntlet:
            raise HTTPException(status_code=404, detail="Gauntlet not found")
        if gauntlet["status"] not in {s.value for s in OPEN_STATUSES}:
            raise HTTPException(
                status_code=409,
                detail=f"Cannot record matches in a {gauntlet['status']} gauntlet",
            )

        await gauntlet_service.validate_match_lineups(
            session,
            payload.gauntlet_id,
            [payload.side_a_lineup_id, payload.side_b_lineup_id],
        )

        return await ladder_service.process_match(
            session,
            gauntlet_id=payload.gauntlet_id,
            side_a_lineup_id=payload.side_a_lineup_id,
            side_b_lineup_id=payload.side_b_lineup_id,
            sets=payload.sets,
            side_a_set_wins=payload.side_a_set_wins,
            side_a_set_losses=payload.side_a_set_losses,
            match_date=payload.match_date,
            workout=payload.workout,
            notes=payload.notes,
        )
    except HTTPException:
        raise
    except (GauntletNotFoundError, LineupNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GauntletClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (DuplicatePositionError, PositionNotFoundError) as e:
        logger.warning(f"Conflict recording match in gauntlet {payload.gauntlet_id}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except TransactionFailureError as e:
        logger.error(f"Match in gauntlet {payload.gauntlet_id} rolled back: {e}")
        raise HTTPException(status_code=500, detail="Failed to record gauntlet match")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error recording gauntlet match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to record gauntlet match")


@router.get("/api/gauntlets/{gauntlet_id}/matches", response_model=List[GauntletMatchResponse])
async def list_gauntlet_matches(
    gauntlet_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List a gauntlet's matches, most recent first."""
    try:
        gauntlet = await gauntlet_service.get_gauntlet(session, gauntlet_id)
        if not gauntlet:
            raise HTTPException(status_code=404, detail="Gauntlet not found")
        return await gauntlet_service.list_matches(session, gauntlet_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing matches for gauntlet {gauntlet_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error listing matches")


@router.get("/api/gauntlet-matches/{match_id}", response_model=GauntletMatchResponse)
async def get_gauntlet_match(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a single match."""
    try:
        match = await gauntlet_service.get_match(session, match_id)
        if not match:
            raise HTTPException(status_code=404, detail="Gauntlet match not found")
        return match
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching gauntlet match {match_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching match")
