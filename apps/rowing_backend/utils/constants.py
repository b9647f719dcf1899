"""
Constants used across the challenge ladder engine.
"""

import os

TOP_RANK = 1  # Rank 1 is the top of the ladder
WIN_RATE_SCALE = 100  # win_rate is stored as a percentage

# Retries for a match submission that lost a serialization race.
# SQLSTATE 40001 = serialization_failure, 40P01 = deadlock_detected
MAX_SERIALIZATION_RETRIES = int(os.getenv("MAX_SERIALIZATION_RETRIES", "3"))
RETRYABLE_SQLSTATES = ("40001", "40P01")

MATCH_SUBMISSION_RATE_LIMIT = os.getenv("MATCH_SUBMISSION_RATE_LIMIT", "30/minute")
