"""Gauntlet, lineup, ladder and progression route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rowing_backend.api.auth_dependencies import require_user
from rowing_backend.database.db import get_db_session
from rowing_backend.database.models import GauntletStatus
from rowing_backend.models.schemas import (
    CreateGauntletRequest,
    DeleteGauntletResponse,
    GauntletResponse,
    LineupCreate,
    LineupResponse,
    PositionResponse,
    ProgressionResponse,
    UpdateGauntletStatusRequest,
)
from rowing_backend.services import gauntlet_service, position_service, progression_service
from rowing_backend.services.gauntlet_service import InvalidStatusTransitionError
from rowing_backend.services.position_service import DuplicatePositionError, GauntletNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


async def _require_gauntlet(session: AsyncSession, gauntlet_id: int) -> dict:
    gauntlet = await gauntlet_service.get_gauntlet(session, gauntlet_id)
    if not gauntlet:
        raise HTTPException(status_code=404, detail="Gauntlet not found")
    return gauntlet


@router.post("/api/gauntlets", response_model=GauntletResponse, status_code=201)
async def create_gauntlet(
    payload: CreateGauntletRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a gauntlet, its lineups and its starting ladder.

    Request body:
        {
            "name": "Spring 2x gauntlet",
            "boat_type": "2x",
            "status": "setup",            // Optional, "setup" or "active"
            "home_lineup": {"name": "Varsity A", "boat_id": 4},
            "challengers": [{"name": "Varsity B", "boat_id": 5}, ...]
        }

    Challengers are ranked from the top in the order given; the home lineup
    starts at the bottom.
    """
    try:
        return await gauntlet_service.create_gauntlet(
            session,
            name=payload.name,
            boat_type=payload.boat_type,
            home_lineup=payload.home_lineup.model_dump(),
            challenger_lineups=[c.model_dump() for c in payload.challengers],
            description=payload.description,
            created_by=user["athlete_id"],
            status=payload.status,
        )
    except DuplicatePositionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating gauntlet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating gauntlet")


@router.get("/api/gauntlets", response_model=List[GauntletResponse])
async def list_gauntlets(
    status: Optional[GauntletStatus] = Query(None),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List gauntlets, optionally filtered by status."""
    try:
        return await gauntlet_service.list_gauntlets(session, status=status)
    except Exception as e:
        logger.error(f"Error listing gauntlets: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error listing gauntlets")


@router.get("/api/gauntlets/{gauntlet_id}", response_model=GauntletResponse)
async def get_gauntlet(
    gauntlet_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a gauntlet with its lineups."""
    try:
        return await _require_gauntlet(session, gauntlet_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching gauntlet {gauntlet_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching gauntlet")


@router.patch("/api/gauntlets/{gauntlet_id}/status", response_model=GauntletResponse)
async def update_gauntlet_status(
    gauntlet_id: int,
    payload: UpdateGauntletStatusRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Move a gauntlet to a new status (setup -> active -> completed | cancelled)."""
    try:
        return await gauntlet_service.update_gauntlet_status(session, gauntlet_id, payload.status)
    except GauntletNotFoundError:
        raise HTTPException(status_code=404, detail="Gauntlet not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating gauntlet {gauntlet_id} status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating gauntlet status")


@router.delete("/api/gauntlets/{gauntlet_id}", response_model=DeleteGauntletResponse)
async def delete_gauntlet(
    gauntlet_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a gauntlet with its lineups, ladder, matches and history."""
    try:
        counts = await gauntlet_service.delete_gauntlet(session, gauntlet_id)
        return {"status": "deleted", "deleted": counts}
    except GauntletNotFoundError:
        raise HTTPException(status_code=404, detail="Gauntlet not found")
    except Exception as e:
        logger.error(f"Error deleting gauntlet {gauntlet_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting gauntlet")


@router.post(
    "/api/gauntlets/{gauntlet_id}/lineups", response_model=LineupResponse, status_code=201
)
async def add_lineup(
    gauntlet_id: int,
    payload: LineupCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Register a late entrant; it joins the ladder at the bottom with its first match."""
    try:
        return await gauntlet_service.add_lineup(
            session, gauntlet_id, name=payload.name, boat_id=payload.boat_id
        )
    except GauntletNotFoundError:
        raise HTTPException(status_code=404, detail="Gauntlet not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding lineup to gauntlet {gauntlet_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error adding lineup")


@router.get("/api/gauntlets/{gauntlet_id}/ladder", response_model=List[PositionResponse])
async def get_ladder(
    gauntlet_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the ladder, top rank first."""
    try:
        await _require_gauntlet(session, gauntlet_id)
        return await position_service.list_ladder(session, gauntlet_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching ladder for gauntlet {gauntlet_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching ladder")


@router.get(
    "/api/gauntlets/{gauntlet_id}/progressions", response_model=List[ProgressionResponse]
)
async def get_gauntlet_progressions(
    gauntlet_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get every rank change in a gauntlet, newest first."""
    try:
        await _require_gauntlet(session, gauntlet_id)
        return await progression_service.list_progressions_for_gauntlet(session, gauntlet_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching progressions for gauntlet {gauntlet_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching progressions")


@router.get(
    "/api/gauntlet-lineups/{lineup_id}/progressions", response_model=List[ProgressionResponse]
)
async def get_lineup_progressions(
    lineup_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get one lineup's rank history, newest first."""
    try:
        lineup = await gauntlet_service.get_lineup(session, lineup_id)
        if not lineup:
            raise HTTPException(status_code=404, detail="Lineup not found")
        return await progression_service.list_progressions_for_lineup(session, lineup_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching progressions for lineup {lineup_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching progressions")
