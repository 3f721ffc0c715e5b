"""
Provenance Index

Answers "all entries for product X / batch Y", ordered by event time.

The index keeps secondary maps (product id -> block positions, batch id ->
block positions) that are extended from the ledger's append listener, so a
query costs O(k log k) for k matching entries instead of a full chain scan.
Positions are always resolved against a single chain snapshot.
"""

import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from ..blockchain.entry import SupplyChainEntry
from ..blockchain.ledger import Block, Ledger


def sort_by_time(entries: Iterable[SupplyChainEntry]) -> List[SupplyChainEntry]:
    """Sort entries ascending by event timestamp (stable: ties keep chain order)."""
    return sorted(entries, key=lambda e: e.timestamp)


class ProvenanceIndex:
    """
    Incrementally maintained lookup over a ledger.

    Example:
        >>> index = ProvenanceIndex(ledger)
        >>> [e.stage.value for e in index.by_batch("BATCH-1")]
        ['raw_materials', 'manufacturing']
    """

    def __init__(self, ledger: Ledger):
        self._ledger = ledger
        self._lock = threading.Lock()
        self._by_product: Dict[str, List[int]] = defaultdict(list)
        self._by_batch: Dict[str, List[int]] = defaultdict(list)
        self._indexed = 0

        # Register before the initial catch-up so no append is missed;
        # _index_through skips anything already indexed.
        ledger.add_listener(self._on_block)
        self._index_through(ledger.all())

    def _on_block(self, block: Block) -> None:
        self._index_through(self._ledger.all())

    def _index_through(self, chain: Sequence[Block]) -> None:
        with self._lock:
            for block in chain[self._indexed:]:
                self._by_product[block.data.product_id].append(block.index)
                self._by_batch[block.data.batch_id].append(block.index)
                self._indexed += 1

    def _lookup(
        self,
        table: Dict[str, List[int]],
        key: str,
        chain: Optional[Sequence[Block]] = None
    ) -> List[SupplyChainEntry]:
        if chain is None:
            chain = self._ledger.all()
        with self._lock:
            positions = list(table.get(key, ()))
        return sort_by_time(chain[p].data for p in positions if p < len(chain))

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    def by_product(
        self,
        product_id: str,
        chain: Optional[Sequence[Block]] = None
    ) -> List[SupplyChainEntry]:
        """
        All entries for a product, oldest first. Unknown ids give [].

        Pass a snapshot from ledger.all() as chain to read a fixed view.
        """
        return self._lookup(self._by_product, product_id, chain)

    def by_batch(
        self,
        batch_id: str,
        chain: Optional[Sequence[Block]] = None
    ) -> List[SupplyChainEntry]:
        """All entries for a batch, oldest first (see by_product)."""
        return self._lookup(self._by_batch, batch_id, chain)

    def close(self) -> None:
        """Stop following the ledger."""
        self._ledger.remove_listener(self._on_block)

    # ------------------------------------------------------------------------
    # Baseline
    # ------------------------------------------------------------------------

    @staticmethod
    def scan(
        chain: Sequence[Block],
        product_id: Optional[str] = None,
        batch_id: Optional[str] = None
    ) -> List[SupplyChainEntry]:
        """
        Linear-scan query over a chain snapshot.

        Filters on every id given; with neither, returns every entry.
        """
        return sort_by_time(
            block.data for block in chain
            if (product_id is None or block.data.product_id == product_id)
            and (batch_id is None or block.data.batch_id == batch_id)
        )
