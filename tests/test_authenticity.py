"""
Unit tests for authenticity scoring.

Tests:
- Unknown batches
- Partial supply chains are never authentic
- Complete supply chains
- Individual score components
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from supplyledger.blockchain.entry import TestOutcome
from supplyledger.blockchain.ledger import Ledger
from supplyledger.config import EXPECTED_STAGES, LedgerConfig
from supplyledger.integration.service import SupplyChainService
from supplyledger.provenance.authenticity import (
    AuthenticityScorer,
    VerificationDetails,
    missing_stages,
)
from supplyledger.provenance.index import ProvenanceIndex

from .conftest import BASE_TIME, TEST_DIFFICULTY


@pytest.fixture
def scorer(ledger):
    return AuthenticityScorer(ledger, ProvenanceIndex(ledger))


class TestUnknownBatch:
    """Tests for batches with no entries."""

    def test_zero_confidence(self, scorer):
        result = scorer.verify("p1", "missing")
        assert not result.is_authentic
        assert result.confidence == 0
        assert not result.supply_chain_complete
        assert result.details == VerificationDetails()
        assert result.missing_stages == EXPECTED_STAGES


class TestPartialChain:
    """Tests for incomplete supply chains."""

    def test_single_stage_not_authentic(self, ledger, scorer, make_entry):
        """High confidence alone does not make a batch authentic."""
        ledger.append(make_entry(stage="raw_materials", certifications=("X",)))

        result = scorer.verify("p1", "b1")
        assert result.confidence == 100
        assert not result.supply_chain_complete
        assert not result.is_authentic
        assert len(result.missing_stages) == 4
        assert "raw_materials" not in result.missing_stages

    def test_retail_only_incomplete(self, ledger, scorer, make_entry):
        ledger.append(make_entry(stage="retail"))
        result = scorer.verify("p1", "b1")
        assert result.missing_stages == EXPECTED_STAGES
        assert not result.is_authentic


class TestCompleteChain:
    """Tests for batches with all five stages."""

    def test_complete_chain_authentic(self, ledger, scorer, full_batch):
        for entry in full_batch:
            ledger.append(entry)

        result = scorer.verify("p1", "b1")
        assert result.supply_chain_complete
        assert result.missing_stages == ()
        assert result.confidence == 100
        assert result.is_authentic

    def test_out_of_order_stages_complete(self, ledger, scorer, full_batch):
        """Stage order is not enforced; only presence counts."""
        for entry in reversed(full_batch):
            ledger.append(entry)
        assert scorer.verify("p1", "b1").supply_chain_complete

    def test_duplicate_stage_does_not_hurt(self, ledger, scorer, full_batch, make_entry):
        for entry in full_batch:
            ledger.append(entry)
        ledger.append(make_entry(stage="packaging", timestamp=BASE_TIME + timedelta(days=1)))
        assert scorer.verify("p1", "b1").is_authentic

    def test_matches_by_batch_only(self, ledger, scorer, full_batch):
        """The product id is echoed, not used to select entries."""
        for entry in full_batch:
            ledger.append(entry)

        result = scorer.verify("someone-else", "b1")
        assert result.product_id == "someone-else"
        assert result.is_authentic


class TestScoreComponents:
    """Tests for the individual 25-point checks."""

    def test_one_passing_test_is_enough(self, ledger, scorer, full_batch):
        """Only one entry needs a PASSED toxicity test."""
        ledger.append(full_batch[0])
        for entry in full_batch[1:]:
            ledger.append(replace(entry, test_results=None))
        assert scorer.verify("p1", "b1").details.test_results_verified

    def test_no_passing_toxicity(self, ledger, scorer, full_batch, make_entry):
        for entry in full_batch:
            ledger.append(make_entry(
                stage=entry.stage, timestamp=entry.timestamp, toxicity=TestOutcome.FAILED
            ))

        result = scorer.verify("p1", "b1")
        assert not result.details.test_results_verified
        assert result.confidence == 75
        assert result.is_authentic

    def test_no_certifications_or_tests(self, ledger, scorer, full_batch, make_entry):
        for entry in full_batch:
            ledger.append(make_entry(
                stage=entry.stage, timestamp=entry.timestamp, certifications=(), toxicity=None
            ))

        result = scorer.verify("p1", "b1")
        assert result.confidence == 50
        assert not result.is_authentic

    def test_confidence_is_multiple_of_25(self, ledger, scorer, make_entry):
        ledger.append(make_entry(certifications=(), toxicity=TestOutcome.FAILED))
        assert scorer.verify("p1", "b1").confidence in {0, 25, 50, 75, 100}

    def test_custom_threshold(self, full_batch, make_entry):
        """A stricter threshold rejects a 75-point batch."""
        ledger = Ledger(config=LedgerConfig(difficulty=TEST_DIFFICULTY, authentic_threshold=100))
        service = SupplyChainService(ledger=ledger)
        for entry in full_batch:
            service.append(make_entry(
                stage=entry.stage, timestamp=entry.timestamp, toxicity=None
            ))

        result = service.verify("p1", "b1")
        assert result.confidence == 75
        assert not result.is_authentic

    def test_integrity_checked_on_same_snapshot(self, ledger, scorer, full_batch, monkeypatch):
        """Chain integrity is judged on the snapshot the entries came from."""
        for entry in full_batch:
            ledger.append(entry)
        snapshot = ledger.all()
        seen = []
        original = ledger.validate

        def recording_validate(chain=None):
            seen.append(chain)
            return original(chain)

        monkeypatch.setattr(ledger, "validate", recording_validate)
        assert scorer.verify("p1", "b1").details.chain_integrity
        assert seen == [snapshot]
        assert seen[0] is snapshot

    def test_details_score(self):
        details = VerificationDetails(chain_integrity=True, digital_signatures_valid=True)
        assert details.score == 50

    def test_to_dict(self, ledger, scorer, make_entry):
        ledger.append(make_entry())
        data = scorer.verify("p1", "b1").to_dict()
        assert data['details']['chain_integrity'] is True
        assert data['last_verified'].endswith("Z")


class TestMissingStages:
    """Tests for the missing_stages helper."""

    def test_lifecycle_order(self, make_entry):
        entries = [make_entry(stage="packaging"), make_entry(stage="raw_materials")]
        assert missing_stages(entries, EXPECTED_STAGES) == (
            "manufacturing", "quality_testing", "distribution",
        )
