"""
Supply Chain Service

The narrow interface the surrounding application (HTTP routes, admin
dashboards) uses to record and query provenance.

Features:
- Append single events or the standard five-stage batch workflow
- Product and batch history, oldest first
- Authenticity verification per batch
- Chain statistics and sustainability metrics
- JSON snapshot export / import

Each service owns one Ledger and the read-side components attached to it.
Create one per deployment and pass it to callers; there is no global.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..blockchain.entry import SupplyChainEntry
from ..blockchain.ledger import Ledger, utc_now
from ..config import LedgerConfig
from ..core_crypto.signature import SignatureStamp
from ..provenance.authenticity import AuthenticityResult, AuthenticityScorer
from ..provenance.index import ProvenanceIndex
from ..provenance.sustainability import SustainabilityMetrics, sustainability_metrics
from .workflow import (
    SAMPLE_CERTIFICATES,
    SAMPLE_PRODUCTS,
    MaterialCertificate,
    batch_workflow_entries,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainStats:
    total_blocks: int
    total_products: int
    total_batches: int
    chain_valid: bool
    last_block_hash: str
    avg_block_time: float  # milliseconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_blocks': self.total_blocks,
            'total_products': self.total_products,
            'total_batches': self.total_batches,
            'chain_valid': self.chain_valid,
            'last_block_hash': self.last_block_hash,
            'avg_block_time': self.avg_block_time,
        }


class SupplyChainService:
    """
    Provenance ledger facade.

    Example:
        >>> service = SupplyChainService(difficulty=2)
        >>> hashes = service.append_batch_workflow("p1", "b1", SAMPLE_CERTIFICATES)
        >>> service.verify("p1", "b1").is_authentic
        True
    """

    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        difficulty: Optional[int] = None,
        config: Optional[LedgerConfig] = None,
        stamp: Optional[SignatureStamp] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Args:
            ledger: Existing ledger to serve (a new one is created if omitted)
            difficulty: PoW difficulty for a new ledger
            config: Settings for a new ledger
            stamp: Signature stamp for a new ledger
            clock: Timestamp source for workflow entries (and a new ledger)
        """
        if ledger is None:
            ledger = Ledger(difficulty=difficulty, stamp=stamp, config=config, clock=clock)
        self._ledger = ledger
        self._clock = clock
        self._index = ProvenanceIndex(self._ledger)
        self._scorer = AuthenticityScorer(self._ledger, self._index)

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def index(self) -> ProvenanceIndex:
        return self._index

    # ========================================================================
    # Recording
    # ========================================================================

    def append(self, entry: SupplyChainEntry) -> str:
        """Record one provenance event. Returns the new block hash."""
        return self._ledger.append(entry)

    def append_batch_workflow(
        self,
        product_id: str,
        batch_id: str,
        certificates: Sequence[MaterialCertificate]
    ) -> List[str]:
        """
        Record the standard five-stage workflow for a batch.

        Stages are appended in order; a failure part-way leaves the stages
        already sealed on the chain and propagates the error.

        Args:
            product_id: Product identifier
            batch_id: Batch identifier
            certificates: Material certificates; their ids become the
                          raw_materials certifications

        Returns:
            The five block hashes, in stage order
        """
        hashes = [
            self._ledger.append(entry)
            for entry in batch_workflow_entries(
                product_id, batch_id, certificates, clock=self._clock
            )
        ]
        logger.info("Recorded batch workflow for %s / %s (%d blocks)",
                    product_id, batch_id, len(hashes))
        return hashes

    def initialize_sample_data(self) -> Dict[str, List[str]]:
        """
        Seed the ledger with the sample catalogue.

        Returns:
            Mapping of product id to its workflow block hashes
        """
        seeded = {}
        for product_id, batch_id in SAMPLE_PRODUCTS:
            seeded[product_id] = self.append_batch_workflow(
                product_id, batch_id, SAMPLE_CERTIFICATES
            )
        logger.info("Sample ledger data initialized (%d products)", len(seeded))
        return seeded

    # ========================================================================
    # Queries
    # ========================================================================

    def get_product_history(self, product_id: str) -> List[SupplyChainEntry]:
        return self._index.by_product(product_id)

    def get_batch_history(self, batch_id: str) -> List[SupplyChainEntry]:
        return self._index.by_batch(batch_id)

    def verify(self, product_id: str, batch_id: str) -> AuthenticityResult:
        return self._scorer.verify(product_id, batch_id)

    def sustainability_metrics(self, product_id: str) -> SustainabilityMetrics:
        return sustainability_metrics(self._index, product_id)

    def stats(self) -> ChainStats:
        """
        Summarize one consistent snapshot of the chain.

        total_products / total_batches ignore the genesis block.
        avg_block_time is the mean timestamp delta between consecutive
        blocks in milliseconds, counting genesis -> first block (0.0 when
        only genesis exists).
        """
        chain = self._ledger.all()
        recorded = chain[1:]

        deltas = [
            (chain[i].timestamp - chain[i - 1].timestamp).total_seconds() * 1000
            for i in range(1, len(chain))
        ]
        avg_block_time = sum(deltas) / len(deltas) if deltas else 0.0

        return ChainStats(
            total_blocks=len(chain),
            total_products=len({b.data.product_id for b in recorded}),
            total_batches=len({b.data.batch_id for b in recorded}),
            chain_valid=self._ledger.validate(chain).valid,
            last_block_hash=chain[-1].hash,
            avg_block_time=avg_block_time,
        )

    def print_batch_history(self, batch_id: str) -> None:
        """Print a batch's provenance trail in a readable format."""
        entries = self.get_batch_history(batch_id)

        print("\n" + "=" * 70)
        print(f"PROVENANCE: {batch_id}")
        print("=" * 70)
        for entry in entries:
            print(entry)
            if entry.certifications:
                print(f"    certifications: {', '.join(entry.certifications)}")
            print(f"    verified by: {entry.verified_by} (sig {entry.digital_signature})")
        print("=" * 70)
        print(f"Total entries: {len(entries)}")
        print("=" * 70)

    # ========================================================================
    # Snapshots
    # ========================================================================

    def export_snapshot(self) -> str:
        """Export the entire ledger as JSON."""
        return self._ledger.to_json()

    @classmethod
    def import_snapshot(
        cls,
        json_str: str,
        stamp: Optional[SignatureStamp] = None
    ) -> 'SupplyChainService':
        """
        Restore a service from a JSON snapshot.

        Raises:
            ValidationError: If the snapshot is malformed or fails validation
        """
        return cls(ledger=Ledger.from_json(json_str, stamp=stamp))
