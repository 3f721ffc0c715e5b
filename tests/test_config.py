"""
Unit tests for ledger configuration.

Tests:
- Defaults
- Validation of difficulty and threshold
- Environment overrides
"""

from datetime import datetime

import pytest

from supplyledger.config import (
    AUTHENTIC_THRESHOLD,
    DEFAULT_DIFFICULTY,
    ENV_AUTHENTIC_THRESHOLD,
    ENV_DIFFICULTY,
    EXPECTED_STAGES,
    LedgerConfig,
    check_difficulty,
)


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        config = LedgerConfig()
        assert config.difficulty == DEFAULT_DIFFICULTY == 4
        assert config.authentic_threshold == AUTHENTIC_THRESHOLD == 75
        assert config.expected_stages == EXPECTED_STAGES
        assert "retail" not in config.expected_stages


class TestValidation:
    """Tests for rejected settings."""

    @pytest.mark.parametrize("difficulty", [0, 65, -1, True, 2.0])
    def test_bad_difficulty(self, difficulty):
        with pytest.raises(ValueError):
            check_difficulty(difficulty)

    def test_bounds_accepted(self):
        assert check_difficulty(1) == 1
        assert check_difficulty(64) == 64

    def test_bad_threshold(self):
        with pytest.raises(ValueError):
            LedgerConfig(authentic_threshold=101)

    def test_naive_genesis_timestamp(self):
        with pytest.raises(ValueError):
            LedgerConfig(genesis_timestamp=datetime(2024, 1, 1))


class TestFromEnv:
    """Tests for environment overrides."""

    def test_empty_environment(self):
        assert LedgerConfig.from_env({}) == LedgerConfig()

    def test_overrides(self):
        config = LedgerConfig.from_env({ENV_DIFFICULTY: "3", ENV_AUTHENTIC_THRESHOLD: "50"})
        assert config.difficulty == 3
        assert config.authentic_threshold == 50

    def test_blank_value_ignored(self):
        assert LedgerConfig.from_env({ENV_DIFFICULTY: "  "}).difficulty == DEFAULT_DIFFICULTY

    def test_non_integer(self):
        with pytest.raises(ValueError, match=ENV_DIFFICULTY):
            LedgerConfig.from_env({ENV_DIFFICULTY: "four"})

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            LedgerConfig.from_env({ENV_DIFFICULTY: "99"})

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv(ENV_DIFFICULTY, "2")
        assert LedgerConfig.from_env().difficulty == 2
