"""
Ledger Configuration

Defaults for the provenance ledger, with optional overrides from the
environment for the service layer that hosts it.

Environment variables:
- SUPPLYLEDGER_DIFFICULTY: leading zero hex characters required (1-64)
- SUPPLYLEDGER_AUTHENTIC_THRESHOLD: minimum confidence for authenticity (0-100)
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional, Tuple


# ============================================================================
# Constants
# ============================================================================

DEFAULT_DIFFICULTY = 4  # Leading zero hex characters (~65,536 hashes/block)
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 64  # A SHA-256 hex digest is 64 characters

GENESIS_TIMESTAMP = datetime(2024, 1, 1, tzinfo=timezone.utc)
GENESIS_PREV_HASH = "0"

AUTHENTIC_THRESHOLD = 75

# Canonical lifecycle, in order. 'retail' is a valid stage but is not
# required for a complete supply chain.
EXPECTED_STAGES: Tuple[str, ...] = (
    "raw_materials",
    "manufacturing",
    "quality_testing",
    "packaging",
    "distribution",
)

ENV_DIFFICULTY = "SUPPLYLEDGER_DIFFICULTY"
ENV_AUTHENTIC_THRESHOLD = "SUPPLYLEDGER_AUTHENTIC_THRESHOLD"


def check_difficulty(difficulty: int) -> int:
    """Return difficulty unchanged, or raise ValueError if out of range."""
    if not isinstance(difficulty, int) or isinstance(difficulty, bool):
        raise ValueError("Difficulty must be an integer")
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise ValueError(
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}"
        )
    return difficulty


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable ledger settings."""
    difficulty: int = DEFAULT_DIFFICULTY
    genesis_timestamp: datetime = GENESIS_TIMESTAMP
    expected_stages: Tuple[str, ...] = field(default=EXPECTED_STAGES)
    authentic_threshold: int = AUTHENTIC_THRESHOLD

    def __post_init__(self):
        check_difficulty(self.difficulty)
        if not 0 <= self.authentic_threshold <= 100:
            raise ValueError("Authentic threshold must be between 0 and 100")
        if self.genesis_timestamp.tzinfo is None:
            raise ValueError("Genesis timestamp must be timezone-aware")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'LedgerConfig':
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            LedgerConfig with any overrides applied

        Raises:
            ValueError: If a variable is present but not a valid integer
        """
        env = os.environ if environ is None else environ
        overrides = {}
        for name, attr in (
            (ENV_DIFFICULTY, 'difficulty'),
            (ENV_AUTHENTIC_THRESHOLD, 'authentic_threshold'),
        ):
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[attr] = int(raw)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got {raw!r}") from None
        return cls(**overrides)
