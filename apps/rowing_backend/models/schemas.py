"""
Pydantic models for API request/response validation.
"""

from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator

from rowing_backend.database.models import BoatType, GauntletStatus
from rowing_backend.utils.datetime_utils import parse_match_date


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


class LineupCreate(BaseModel):
    """A lineup entering a gauntlet."""

    name: Optional[str] = None
    boat_id: Optional[int] = None


class LineupResponse(BaseModel):
    id: int
    gauntlet_id: int
    name: Optional[str] = None
    boat_id: Optional[int] = None
    is_home_lineup: bool


class CreateGauntletRequest(BaseModel):
    """Request to create a gauntlet and seed its ladder."""

    name: str = Field(min_length=1)
    description: Optional[str] = None
    boat_type: BoatType
    status: GauntletStatus = GauntletStatus.SETUP
    home_lineup: LineupCreate
    challengers: List[LineupCreate] = Field(default_factory=list)

    @field_validator("status")
    @classmethod
    def validate_initial_status(cls, v: GauntletStatus) -> GauntletStatus:
        if v not in (GauntletStatus.SETUP, GauntletStatus.ACTIVE):
            raise ValueError("A new gauntlet must start as 'setup' or 'active'")
        return v


class UpdateGauntletStatusRequest(BaseModel):
    """Request to move a gauntlet along its lifecycle."""

    status: GauntletStatus


class PositionResponse(BaseModel):
    """A lineup's place on the ladder."""

    id: int
    gauntlet_id: int
    lineup_id: int
    rank: int
    previous_rank: Optional[int] = None
    wins: int
    losses: int
    draws: int
    total_matches: int
    win_rate: float
    points: int
    streak_kind: str
    streak_length: int
    last_match_date: Optional[date] = None
    lineup_name: Optional[str] = None
    boat_id: Optional[int] = None
    is_home_lineup: Optional[bool] = None


class GauntletResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    boat_type: str
    created_by: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    lineups: Optional[List[LineupResponse]] = None
    ladder: Optional[List[PositionResponse]] = None


class ProgressionResponse(BaseModel):
    """One rank change."""

    id: int
    gauntlet_id: int
    lineup_id: int
    from_rank: int
    to_rank: int
    delta: int
    reason: str
    match_id: Optional[int] = None
    notes: Optional[str] = None
    occurred_at: datetime


class CreateGauntletMatchRequest(BaseModel):
    """
    Request to record a match and update the ladder.

    Side B's set counts are the complement of side A's; sets neither side
    won were drawn.
    """

    gauntlet_id: int
    side_a_lineup_id: int
    side_b_lineup_id: int
    sets: int = Field(ge=1)
    side_a_set_wins: int = Field(default=0, ge=0)
    side_a_set_losses: int = Field(default=0, ge=0)
    match_date: date
    workout: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("match_date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_match_date(v)

    @model_validator(mode="after")
    def validate_match(self):
        if self.side_a_lineup_id == self.side_b_lineup_id:
            raise ValueError("Side A and side B must be different lineups")
        if self.side_a_set_wins + self.side_a_set_losses > self.sets:
            raise ValueError("Total set wins and losses cannot exceed total sets")
        return self


class GauntletMatchResponse(BaseModel):
    id: int
    gauntlet_id: int
    side_a_lineup_id: int
    side_b_lineup_id: int
    workout: Optional[str] = None
    sets: int
    side_a_set_wins: int
    side_a_set_losses: int
    side_b_set_wins: int
    side_b_set_losses: int
    match_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class SideUpdateResponse(BaseModel):
    """How one side of a match moved on the ladder."""

    lineup_id: int
    outcome: str
    position: PositionResponse
    progression: Optional[ProgressionResponse] = None


class ProcessMatchResponse(BaseModel):
    match: GauntletMatchResponse
    side_a_update: SideUpdateResponse
    side_b_update: SideUpdateResponse


class DeleteGauntletResponse(BaseModel):
    status: str
    deleted: dict
