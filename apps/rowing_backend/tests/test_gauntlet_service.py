"""
Tests for gauntlet setup, lifecycle and teardown.
"""
import pytest
from datetime import date

from rowing_backend.database.models import BoatType, GauntletStatus
from rowing_backend.services import gauntlet_service, ladder_service
from rowing_backend.services.gauntlet_service import (
    InvalidStatusTransitionError,
    LineupNotFoundError,
)
from rowing_backend.services.position_service import DuplicatePositionError, GauntletNotFoundError


# ============================================================================
# Setup
# ============================================================================

@pytest.mark.asyncio
async def test_create_gauntlet_seeds_challengers_above_home(db_session, four_lineup_gauntlet):
    """Challengers take ranks 1..K in order; the home lineup starts at K+1."""
    gauntlet = four_lineup_gauntlet

    assert gauntlet["id"] > 0
    assert gauntlet["status"] == "setup"
    assert gauntlet["boat_type"] == "2x"
    assert gauntlet["created_by"] == 1
    assert len(gauntlet["lineups"]) == 4
    assert gauntlet["lineups"][0]["is_home_lineup"] is True

    ranks = {entry["lineup_name"]: entry["rank"] for entry in gauntlet["ladder"]}
    assert ranks == {"First": 1, "Second": 2, "Third": 3, "Home": 4}


@pytest.mark.asyncio
async def test_create_gauntlet_without_challengers(db_session):
    gauntlet = await gauntlet_service.create_gauntlet(
        db_session,
        name="Solo",
        boat_type="8+",
        home_lineup={"name": "Home"},
        challenger_lineups=[],
        status="active",
    )
    assert gauntlet["status"] == "active"
    assert [entry["rank"] for entry in gauntlet["ladder"]] == [1]


@pytest.mark.asyncio
async def test_create_gauntlet_rejects_closed_status(db_session):
    with pytest.raises(ValueError):
        await gauntlet_service.create_gauntlet(
            db_session,
            name="Already done",
            boat_type=BoatType.PAIR,
            home_lineup={"name": "Home"},
            challenger_lineups=[],
            status=GauntletStatus.COMPLETED,
        )


@pytest.mark.asyncio
async def test_seed_positions_rejects_lineup_already_ranked(db_session, two_lineup_gauntlet):
    home_id = two_lineup_gauntlet["lineups"][0]["id"]
    with pytest.raises(DuplicatePositionError):
        await ladder_service.seed_positions(db_session, two_lineup_gauntlet["id"], [], home_id)


# ============================================================================
# Reads
# ============================================================================

@pytest.mark.asyncio
async def test_get_and_list_gauntlets(db_session, two_lineup_gauntlet, four_lineup_gauntlet):
    fetched = await gauntlet_service.get_gauntlet(db_session, two_lineup_gauntlet["id"])
    assert fetched["name"] == "Spring 1x gauntlet"
    assert len(fetched["lineups"]) == 2

    assert await gauntlet_service.get_gauntlet(db_session, 9999) is None

    await gauntlet_service.update_gauntlet_status(
        db_session, four_lineup_gauntlet["id"], GauntletStatus.ACTIVE
    )
    all_gauntlets = await gauntlet_service.list_gauntlets(db_session)
    assert len(all_gauntlets) == 2
    active = await gauntlet_service.list_gauntlets(db_session, status=GauntletStatus.ACTIVE)
    assert [g["id"] for g in active] == [four_lineup_gauntlet["id"]]


@pytest.mark.asyncio
async def test_get_lineup(db_session, two_lineup_gauntlet):
    lineup_id = two_lineup_gauntlet["lineups"][1]["id"]
    lineup = await gauntlet_service.get_lineup(db_session, lineup_id)
    assert lineup["name"] == "Challenger"
    assert lineup["boat_id"] == 11
    assert await gauntlet_service.get_lineup(db_session, 9999) is None


@pytest.mark.asyncio
async def test_validate_match_lineups(db_session, two_lineup_gauntlet, four_lineup_gauntlet):
    ids = [lineup["id"] for lineup in two_lineup_gauntlet["lineups"]]
    await gauntlet_service.validate_match_lineups(db_session, two_lineup_gauntlet["id"], ids)

    foreign = four_lineup_gauntlet["lineups"][0]["id"]
    with pytest.raises(LineupNotFoundError, match=str(foreign)):
        await gauntlet_service.validate_match_lineups(
            db_session, two_lineup_gauntlet["id"], [ids[0], foreign]
        )


@pytest.mark.asyncio
async def test_list_and_get_matches(db_session, two_lineup_gauntlet):
    gauntlet_id = two_lineup_gauntlet["id"]
    home_id, challenger_id = [lineup["id"] for lineup in two_lineup_gauntlet["lineups"]]

    for day in (1, 2):
        await ladder_service.process_match(
            db_session,
            gauntlet_id=gauntlet_id,
            side_a_lineup_id=home_id,
            side_b_lineup_id=challenger_id,
            sets=3,
            side_a_set_wins=2,
            side_a_set_losses=1,
            match_date=date(2026, 4, day),
        )

    matches = await gauntlet_service.list_matches(db_session, gauntlet_id)
    assert [m["match_date"] for m in matches] == [date(2026, 4, 2), date(2026, 4, 1)]

    match = await gauntlet_service.get_match(db_session, matches[0]["id"])
    assert match["side_a_set_wins"] == 2
    assert match["side_b_set_wins"] == 1
    assert await gauntlet_service.get_match(db_session, 9999) is None


# ============================================================================
# Lifecycle
# ============================================================================

@pytest.mark.asyncio
async def test_status_moves_forward(db_session, two_lineup_gauntlet):
    gauntlet_id = two_lineup_gauntlet["id"]

    active = await gauntlet_service.update_gauntlet_status(db_session, gauntlet_id, "active")
    assert active["status"] == "active"
    completed = await gauntlet_service.update_gauntlet_status(
        db_session, gauntlet_id, GauntletStatus.COMPLETED
    )
    assert completed["status"] == "completed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path",
    [
        ["completed"],
        ["active", "setup"],
        ["cancelled", "active"],
        ["active", "completed", "cancelled"],
    ],
)
async def test_invalid_status_transitions(db_session, two_lineup_gauntlet, path):
    gauntlet_id = two_lineup_gauntlet["id"]
    *allowed, rejected = path
    for status in allowed:
        await gauntlet_service.update_gauntlet_status(db_session, gauntlet_id, status)

    with pytest.raises(InvalidStatusTransitionError):
        await gauntlet_service.update_gauntlet_status(db_session, gauntlet_id, rejected)


@pytest.mark.asyncio
async def test_status_change_on_unknown_gauntlet(db_session):
    with pytest.raises(GauntletNotFoundError):
        await gauntlet_service.update_gauntlet_status(db_session, 9999, "active")


@pytest.mark.asyncio
async def test_add_lineup(db_session, two_lineup_gauntlet):
    lineup = await gauntlet_service.add_lineup(
        db_session, two_lineup_gauntlet["id"], name="Novice", boat_id=30
    )
    assert lineup["gauntlet_id"] == two_lineup_gauntlet["id"]
    assert lineup["is_home_lineup"] is False

    fetched = await gauntlet_service.get_gauntlet(db_session, two_lineup_gauntlet["id"])
    assert len(fetched["lineups"]) == 3


@pytest.mark.asyncio
async def test_add_lineup_to_closed_gauntlet(db_session, two_lineup_gauntlet):
    gauntlet_id = two_lineup_gauntlet["id"]
    await gauntlet_service.update_gauntlet_status(db_session, gauntlet_id, "cancelled")

    with pytest.raises(ValueError, match="cancelled"):
        await gauntlet_service.add_lineup(db_session, gauntlet_id, name="Too late")


@pytest.mark.asyncio
async def test_delete_gauntlet(db_session, two_lineup_gauntlet):
    gauntlet_id = two_lineup_gauntlet["id"]
    home_id, challenger_id = [lineup["id"] for lineup in two_lineup_gauntlet["lineups"]]

    # Home sits at rank 2, so a win swaps places and logs two progressions
    await ladder_service.process_match(
        db_session,
        gauntlet_id=gauntlet_id,
        side_a_lineup_id=home_id,
        side_b_lineup_id=challenger_id,
        sets=1,
        side_a_set_wins=1,
        side_a_set_losses=0,
        match_date=date(2026, 4, 1),
    )

    counts = await gauntlet_service.delete_gauntlet(db_session, gauntlet_id)
    assert counts == {"progressions": 2, "matches": 1, "positions": 2, "lineups": 2}
    assert await gauntlet_service.get_gauntlet(db_session, gauntlet_id) is None

    with pytest.raises(GauntletNotFoundError):
        await gauntlet_service.delete_gauntlet(db_session, gauntlet_id)
