"""
Authenticity Scoring

Combines chain validation with a batch's provenance entries into a
confidence score and a pass/fail verdict.

Scoring (25 points each):
- Chain integrity: the whole ledger validates
- Certifications: at least one entry lists a certification
- Test results: at least one entry carries a PASSED toxicity test
- Signatures: every entry carries a non-empty signature tag

A batch is authentic when confidence >= 75 AND all five canonical stages
(raw_materials, manufacturing, quality_testing, packaging, distribution)
are present. Stage order and duplicates are not checked.

The score is recomputed on every call; nothing is cached.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from ..blockchain.ledger import Ledger
from ..core_crypto.hash_codec import format_timestamp
from .index import ProvenanceIndex


logger = logging.getLogger(__name__)

CHECK_WEIGHT = 25


@dataclass(frozen=True)
class VerificationDetails:
    chain_integrity: bool = False
    certifications_valid: bool = False
    test_results_verified: bool = False
    digital_signatures_valid: bool = False

    @property
    def score(self) -> int:
        checks = (
            self.chain_integrity,
            self.certifications_valid,
            self.test_results_verified,
            self.digital_signatures_valid,
        )
        return CHECK_WEIGHT * sum(1 for passed in checks if passed)

    def to_dict(self) -> Dict[str, bool]:
        return {
            'chain_integrity': self.chain_integrity,
            'certifications_valid': self.certifications_valid,
            'test_results_verified': self.test_results_verified,
            'digital_signatures_valid': self.digital_signatures_valid,
        }


@dataclass(frozen=True)
class AuthenticityResult:
    """Verdict for one product batch."""
    product_id: str
    batch_id: str
    is_authentic: bool
    confidence: int
    details: VerificationDetails
    supply_chain_complete: bool
    missing_stages: Tuple[str, ...] = ()
    last_verified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'batch_id': self.batch_id,
            'is_authentic': self.is_authentic,
            'confidence': self.confidence,
            'details': self.details.to_dict(),
            'supply_chain_complete': self.supply_chain_complete,
            'missing_stages': list(self.missing_stages),
            'last_verified': format_timestamp(self.last_verified),
        }


class AuthenticityScorer:
    """Read-only scorer over a ledger and its provenance index."""

    def __init__(self, ledger: Ledger, index: ProvenanceIndex):
        self._ledger = ledger
        self._index = index

    def verify(self, product_id: str, batch_id: str) -> AuthenticityResult:
        """
        Score a product batch.

        Entries are selected by batch_id; product_id is recorded in the
        result but not used for matching. Entries and chain integrity are
        read from the same snapshot.

        Args:
            product_id: Product the caller is asking about
            batch_id: Batch whose entries are scored

        Returns:
            AuthenticityResult (confidence 0 and not authentic for an
            unknown batch)
        """
        chain = self._ledger.all()
        entries = self._index.by_batch(batch_id, chain)
        expected = self._ledger.config.expected_stages

        if not entries:
            return AuthenticityResult(
                product_id=product_id,
                batch_id=batch_id,
                is_authentic=False,
                confidence=0,
                details=VerificationDetails(),
                supply_chain_complete=False,
                missing_stages=tuple(expected),
            )

        details = VerificationDetails(
            chain_integrity=self._ledger.validate(chain).valid,
            certifications_valid=any(e.has_certifications for e in entries),
            test_results_verified=any(e.toxicity_passed for e in entries),
            digital_signatures_valid=all(bool(e.digital_signature) for e in entries),
        )
        missing = missing_stages(entries, expected)
        confidence = details.score
        complete = not missing
        authentic = confidence >= self._ledger.config.authentic_threshold and complete

        logger.debug(
            "Batch %s scored %d (complete=%s, authentic=%s)",
            batch_id, confidence, complete, authentic
        )
        return AuthenticityResult(
            product_id=product_id,
            batch_id=batch_id,
            is_authentic=authentic,
            confidence=confidence,
            details=details,
            supply_chain_complete=complete,
            missing_stages=missing,
        )


def missing_stages(entries: List, expected: Tuple[str, ...]) -> Tuple[str, ...]:
    """Expected stages with no entry, in lifecycle order."""
    present = {e.stage.value for e in entries}
    return tuple(stage for stage in expected if stage not in present)
