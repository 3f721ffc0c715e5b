"""Shared fixtures: low-difficulty ledgers and an entry factory."""

from datetime import datetime, timedelta, timezone

import pytest

from supplyledger.blockchain.entry import (
    Stage,
    SupplyChainEntry,
    TestOutcome,
    TestResults,
    ToxicityTest,
)
from supplyledger.blockchain.ledger import Ledger
from supplyledger.integration.service import SupplyChainService


# Difficulty 2 keeps mining to ~256 hashes per block
TEST_DIFFICULTY = 2

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _make_entry(
    product_id="p1",
    batch_id="b1",
    stage=Stage.RAW_MATERIALS,
    timestamp=None,
    certifications=("X",),
    toxicity=TestOutcome.PASSED,
    **overrides
):
    test_results = None
    if toxicity is not None:
        test_results = TestResults(toxicity_test=ToxicityTest(result=toxicity, lab_name="Lab"))
    fields = dict(
        product_id=product_id,
        batch_id=batch_id,
        stage=stage,
        location="Test Facility",
        timestamp=timestamp or BASE_TIME,
        certifications=certifications,
        verified_by="QA",
        test_results=test_results,
    )
    fields.update(overrides)
    return SupplyChainEntry(**fields)


@pytest.fixture
def make_entry():
    """Factory for valid entries; keyword arguments override fields."""
    return _make_entry


@pytest.fixture
def ledger():
    return Ledger(difficulty=TEST_DIFFICULTY)


@pytest.fixture
def service():
    return SupplyChainService(difficulty=TEST_DIFFICULTY)


@pytest.fixture
def full_batch(make_entry):
    """The five canonical stages for p1/b1, one hour apart."""
    stages = [
        Stage.RAW_MATERIALS,
        Stage.MANUFACTURING,
        Stage.QUALITY_TESTING,
        Stage.PACKAGING,
        Stage.DISTRIBUTION,
    ]
    return [
        make_entry(stage=stage, timestamp=BASE_TIME + timedelta(hours=i))
        for i, stage in enumerate(stages)
    ]
