"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-03-01 00:00:00.000000

Challenge ladder schema: gauntlets, their lineups, ladder positions,
matches and the rank progression log.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


gauntlet_status = sa.Enum("setup", "active", "completed", "cancelled", name="gauntletstatus")
boat_type = sa.Enum("1x", "2x", "2-", "4x", "4+", "8+", name="boattype")
streak_kind = sa.Enum("win", "loss", "draw", "none", name="streakkind")
progression_reason = sa.Enum(
    "match_win",
    "match_loss",
    "match_draw",
    "manual_adjustment",
    "new_entrant",
    name="progressionreason",
)


def upgrade() -> None:
    """Create the challenge ladder tables."""
    op.create_table(
        "gauntlets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("boat_type", boat_type, nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("status", gauntlet_status, nullable=False, server_default="setup"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_gauntlets_created_by", "gauntlets", ["created_by"])
    op.create_index("idx_gauntlets_status", "gauntlets", ["status"])
    op.create_index("idx_gauntlets_boat_type", "gauntlets", ["boat_type"])

    op.create_table(
        "gauntlet_lineups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("gauntlet_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("boat_id", sa.Integer(), nullable=True),
        sa.Column("is_home_lineup", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["gauntlet_id"], ["gauntlets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_gauntlet_lineups_gauntlet_id", "gauntlet_lineups", ["gauntlet_id"])
    op.create_index("idx_gauntlet_lineups_boat_id", "gauntlet_lineups", ["boat_id"])

    op.create_table(
        "gauntlet_positions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("gauntlet_id", sa.Integer(), nullable=False),
        sa.Column("lineup_id", sa.Integer(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("previous_rank", sa.Integer(), nullable=True),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("draws", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_matches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("win_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_kind", streak_kind, nullable=False, server_default="none"),
        sa.Column("streak_length", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_match_date", sa.Date(), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["gauntlet_id"], ["gauntlets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["lineup_id"], ["gauntlet_lineups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "gauntlet_id", "lineup_id", name="uq_gauntlet_positions_gauntlet_lineup"
        ),
        sa.CheckConstraint("rank >= 1", name="ck_gauntlet_positions_rank_positive"),
        sa.CheckConstraint(
            "wins >= 0 AND losses >= 0 AND draws >= 0 AND points >= 0 AND streak_length >= 0",
            name="ck_gauntlet_positions_counters_non_negative",
        ),
        sa.CheckConstraint(
            "wins + losses + draws = total_matches",
            name="ck_gauntlet_positions_total_matches",
        ),
    )
    op.create_index(
        "idx_gauntlet_positions_gauntlet_rank", "gauntlet_positions", ["gauntlet_id", "rank"]
    )
    op.create_index("idx_gauntlet_positions_lineup_id", "gauntlet_positions", ["lineup_id"])

    op.create_table(
        "gauntlet_matches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("gauntlet_id", sa.Integer(), nullable=False),
        sa.Column("side_a_lineup_id", sa.Integer(), nullable=False),
        sa.Column("side_b_lineup_id", sa.Integer(), nullable=False),
        sa.Column("workout", sa.Text(), nullable=True),
        sa.Column("sets", sa.Integer(), nullable=False),
        sa.Column("side_a_set_wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("side_a_set_losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("match_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["gauntlet_id"], ["gauntlets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["side_a_lineup_id"], ["gauntlet_lineups.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["side_b_lineup_id"], ["gauntlet_lineups.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("sets >= 1", name="ck_gauntlet_matches_sets_positive"),
        sa.CheckConstraint(
            "side_a_set_wins >= 0 AND side_a_set_losses >= 0",
            name="ck_gauntlet_matches_set_counts_non_negative",
        ),
    )
    op.create_index("idx_gauntlet_matches_gauntlet_id", "gauntlet_matches", ["gauntlet_id"])
    op.create_index("idx_gauntlet_matches_match_date", "gauntlet_matches", ["match_date"])

    op.create_table(
        "ladder_progressions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("gauntlet_id", sa.Integer(), nullable=False),
        sa.Column("lineup_id", sa.Integer(), nullable=False),
        sa.Column("from_rank", sa.Integer(), nullable=False),
        sa.Column("to_rank", sa.Integer(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("reason", progression_reason, nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "occurred_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["gauntlet_id"], ["gauntlets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["lineup_id"], ["gauntlet_lineups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["match_id"], ["gauntlet_matches.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_ladder_progressions_gauntlet_id", "ladder_progressions", ["gauntlet_id"])
    op.create_index("idx_ladder_progressions_lineup_id", "ladder_progressions", ["lineup_id"])
    op.create_index("idx_ladder_progressions_match_id", "ladder_progressions", ["match_id"])


def downgrade() -> None:
    """Drop the challenge ladder tables and enum types."""
    op.drop_table("ladder_progressions")
    op.drop_table("gauntlet_matches")
    op.drop_table("gauntlet_positions")
    op.drop_table("gauntlet_lineups")
    op.drop_table("gauntlets")

    bind = op.get_bind()
    for enum_type in (progression_reason, streak_kind, boat_type, gauntlet_status):
        enum_type.drop(bind, checkfirst=True)
