"""
Provenance Ledger Module

Implements an append-only, hash-chained ledger of supply-chain events:
- One SupplyChainEntry per block
- SHA-256 chaining over canonical JSON (see core_crypto.hash_codec)
- Proof of Work sealing with adjustable difficulty
- Full chain validation

Integrity features:
- Immutable blocks (frozen dataclass)
- Block timestamp fixed before mining begins
- Single-writer appends; readers see immutable snapshots

Genesis block: not mined. It has nonce 0, a constant timestamp and a
constant payload, so every ledger starts from the same genesis hash.
"""

import json
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config import (
    DEFAULT_DIFFICULTY,
    GENESIS_PREV_HASH,
    GENESIS_TIMESTAMP,
    LedgerConfig,
    check_difficulty,
)
from ..core_crypto.hash_codec import (
    block_digest,
    canonical_json,
    format_timestamp,
    parse_timestamp,
    prefix_state,
    truncate_to_millis,
)
from ..core_crypto.signature import SignatureStamp
from .entry import EntryError, Stage, SupplyChainEntry
from .validator import ChainValidator, ValidationResult


logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class LedgerError(Exception):
    """Base class for ledger failures."""
    pass


class MiningError(LedgerError):
    """Raised when a bounded proof-of-work search exhausts its nonce budget."""
    pass


class ValidationError(LedgerError):
    """Raised when a chain that must be valid (e.g. a restored snapshot) is not."""
    pass


# ============================================================================
# Block Structure (Immutable)
# ============================================================================

GENESIS_ENTRY = SupplyChainEntry(
    product_id='genesis',
    batch_id='genesis',
    stage=Stage.RAW_MATERIALS,
    location='ICEPACA Supply Chain Genesis',
    timestamp=GENESIS_TIMESTAMP,
    certifications=('GENESIS_BLOCK',),
    verified_by='ICEPACA_SYSTEM',
    digital_signature='genesis_signature',
)


@dataclass(frozen=True)
class Block:
    """
    Immutable block holding a single provenance entry.

    frozen=True ensures blocks cannot be modified after sealing; tampering
    can only be simulated by building a modified copy.
    """
    index: int
    timestamp: datetime
    data: SupplyChainEntry
    previous_hash: str
    hash: str = ""
    nonce: int = 0

    def compute_hash(self) -> str:
        """Digest of this block's fields with its current nonce."""
        return block_digest(
            self.index, self.timestamp, self.data, self.previous_hash, self.nonce
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to dictionary for serialization."""
        return {
            'index': self.index,
            'timestamp': format_timestamp(self.timestamp),
            'data': self.data.to_dict(),
            'previousHash': self.previous_hash,
            'hash': self.hash,
            'nonce': self.nonce,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """Create block from dictionary."""
        return cls(
            index=data['index'],
            timestamp=parse_timestamp(data['timestamp']),
            data=SupplyChainEntry.from_dict(data['data']),
            previous_hash=data['previousHash'],
            hash=data['hash'],
            nonce=data['nonce'],
        )

    def __str__(self) -> str:
        return (
            f"Block #{self.index}\n"
            f"  Hash: {self.hash[:16]}...\n"
            f"  Prev: {self.previous_hash[:16]}...\n"
            f"  Time: {format_timestamp(self.timestamp)}\n"
            f"  Nonce: {self.nonce}\n"
            f"  Entry: {self.data.stage.value} / {self.data.product_id} / {self.data.batch_id}"
        )


# ============================================================================
# Proof of Work
# ============================================================================

class ProofOfWork:
    """
    Proof of Work with adjustable difficulty.

    Difficulty is the number of leading '0' hex characters required in the
    block hash. Each extra character multiplies expected work by 16
    (difficulty 4 is ~65,536 hash evaluations per block).
    """

    def __init__(self, difficulty: int = DEFAULT_DIFFICULTY):
        """
        Args:
            difficulty: Leading zero hex characters required (1-64)
        """
        self.difficulty = check_difficulty(difficulty)
        self._target = '0' * difficulty
        self.last_attempts = 0

    @property
    def target(self) -> str:
        """Required hash prefix."""
        return self._target

    def hash_meets_target(self, hash_hex: str) -> bool:
        """Check if a hash meets the difficulty target."""
        return hash_hex.startswith(self._target)

    def mine(
        self,
        index: int,
        timestamp_iso: str,
        data_json: str,
        previous_hash: str,
        start_nonce: int = 0,
        max_nonce: Optional[int] = None
    ) -> Tuple[int, str]:
        """
        Search for a nonce whose block hash meets the target.

        Args:
            index: Block index
            timestamp_iso: Block timestamp (already fixed)
            data_json: Canonical JSON of the entry
            previous_hash: Previous block hash
            start_nonce: First nonce to try
            max_nonce: Stop before this nonce (None searches without bound)

        Returns:
            Tuple of (nonce, hash)

        Raises:
            MiningError: If max_nonce is reached without a valid hash
        """
        base = prefix_state(index, timestamp_iso, data_json, previous_hash)
        target = self._target
        nonce = start_nonce
        attempts = 0

        while max_nonce is None or nonce < max_nonce:
            candidate = base.copy()
            candidate.update(str(nonce).encode('utf-8'))
            block_hash = candidate.hexdigest()
            attempts += 1
            if block_hash.startswith(target):
                self.last_attempts = attempts
                return nonce, block_hash
            nonce += 1

        self.last_attempts = attempts
        raise MiningError(
            f"Failed to find valid nonce after {attempts} attempts "
            f"(difficulty={self.difficulty}, max_nonce={max_nonce})"
        )

    def seal(self, candidate: Block, max_nonce: Optional[int] = None) -> Block:
        """
        Mine a candidate block.

        Only nonce and hash change; index, timestamp, data and
        previous_hash are carried over untouched.
        """
        nonce, block_hash = self.mine(
            index=candidate.index,
            timestamp_iso=format_timestamp(candidate.timestamp),
            data_json=canonical_json(candidate.data.to_dict()),
            previous_hash=candidate.previous_hash,
            start_nonce=candidate.nonce,
            max_nonce=max_nonce,
        )
        return replace(candidate, nonce=nonce, hash=block_hash)


# ============================================================================
# Ledger
# ============================================================================

def utc_now() -> datetime:
    """Current UTC time at the millisecond precision stored in blocks."""
    return truncate_to_millis(datetime.now(timezone.utc))


BlockListener = Callable[[Block], None]


class Ledger:
    """
    Append-only provenance chain.

    Appends (including mining) are serialized by a writer lock. The chain
    is published as an immutable tuple that is swapped after each append,
    so readers always see a complete snapshot and never wait on a miner.
    """

    def __init__(
        self,
        difficulty: Optional[int] = None,
        stamp: Optional[SignatureStamp] = None,
        config: Optional[LedgerConfig] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize a new ledger with its genesis block.

        Args:
            difficulty: PoW difficulty; overrides config.difficulty if given
            stamp: Signature stamp for unsigned entries (default: unkeyed)
            config: Ledger settings (default: LedgerConfig())
            clock: Source of block timestamps
        """
        config = config or LedgerConfig()
        if difficulty is not None:
            config = replace(config, difficulty=difficulty)
        self._config = config
        self._pow = ProofOfWork(config.difficulty)
        self._stamp = stamp or SignatureStamp()
        self._validator = ChainValidator()
        self._clock = clock
        self._write_lock = threading.Lock()
        self._listeners: List[BlockListener] = []
        self._blocks: Tuple[Block, ...] = (self._create_genesis_block(),)

    def _create_genesis_block(self) -> Block:
        """Create the genesis block (constant hash, not mined)."""
        genesis = Block(
            index=0,
            timestamp=self._config.genesis_timestamp,
            data=replace(GENESIS_ENTRY, timestamp=self._config.genesis_timestamp),
            previous_hash=GENESIS_PREV_HASH,
            nonce=0,
        )
        return replace(genesis, hash=genesis.compute_hash())

    # ------------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------------

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def difficulty(self) -> int:
        """Get current difficulty."""
        return self._pow.difficulty

    @property
    def length(self) -> int:
        """Get chain length (genesis included)."""
        return len(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def latest(self) -> Block:
        """Get the last block in the chain."""
        return self._blocks[-1]

    def all(self) -> Tuple[Block, ...]:
        """Snapshot of the chain in insertion order."""
        return self._blocks

    def validate(self, chain: Optional[Tuple[Block, ...]] = None) -> ValidationResult:
        """
        Validate a snapshot at this ledger's difficulty.

        Args:
            chain: Snapshot from all() (defaults to the current one)
        """
        return self._validator.validate(
            self._blocks if chain is None else chain, self._pow.difficulty
        )

    # ------------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------------

    def add_listener(self, listener: BlockListener) -> None:
        """Register a callback invoked with every newly published block."""
        with self._write_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: BlockListener) -> None:
        with self._write_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, block: Block) -> None:
        for listener in list(self._listeners):
            try:
                listener(block)
            except Exception:
                # The block is already published; a listener cannot undo it.
                logger.exception("Block listener %r failed on block #%d", listener, block.index)

    # ------------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------------

    def append(self, entry: SupplyChainEntry, max_nonce: Optional[int] = None) -> str:
        """
        Seal an entry into a new block.

        Args:
            entry: The provenance event to record
            max_nonce: Optional bound on the nonce search

        Returns:
            Hash of the new block

        Raises:
            EntryError: If the entry is malformed (nothing is mined)
            MiningError: If max_nonce is exhausted (nothing is published)
        """
        if not isinstance(entry, SupplyChainEntry):
            raise EntryError(f"Expected SupplyChainEntry, got {type(entry).__name__}")
        entry.validate()
        entry = self._stamp.stamp(entry)

        with self._write_lock:
            previous = self._blocks[-1]
            candidate = Block(
                index=previous.index + 1,
                timestamp=truncate_to_millis(self._clock()),
                data=entry,
                previous_hash=previous.hash,
            )
            block = self._pow.seal(candidate, max_nonce=max_nonce)
            self._blocks = self._blocks + (block,)
            logger.info(
                "Block #%d mined: %s (%d attempts)",
                block.index, block.hash, self._pow.last_attempts
            )
            self._notify(block)

        return block.hash

    # ------------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------------

    def to_json(self) -> str:
        """Serialize the ledger to JSON."""
        return json.dumps({
            'difficulty': self._pow.difficulty,
            'chain': [block.to_dict() for block in self._blocks],
        }, indent=2)

    @classmethod
    def from_json(
        cls,
        json_str: str,
        stamp: Optional[SignatureStamp] = None,
        clock: Callable[[], datetime] = utc_now
    ) -> 'Ledger':
        """
        Restore a ledger from JSON.

        Raises:
            ValidationError: If the document is malformed or the chain is invalid
        """
        try:
            data = json.loads(json_str)
            difficulty = data['difficulty']
            blocks = tuple(Block.from_dict(b) for b in data['chain'])
            ledger = cls(difficulty=difficulty, stamp=stamp, clock=clock)
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationError(f"Malformed ledger snapshot: {e}") from e

        ChainValidator().validate(blocks, difficulty).raise_if_invalid()
        ledger._blocks = blocks
        return ledger

    def print_chain(self) -> None:
        """Print the chain."""
        print(f"\nLedger (difficulty={self.difficulty}, length={self.length})")
        print("=" * 60)
        for block in self._blocks:
            print(block)
            print("-" * 40)
