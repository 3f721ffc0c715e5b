"""
Chain Validator

Walks a chain recomputing every block hash and checking linkage.

Validation stops at the first failing block and reports its index. A
tampered block also breaks every later link, so scanning further would
only repeat the same finding.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from ..config import GENESIS_PREV_HASH
from ..core_crypto.hash_codec import block_digest


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a chain walk. Truthy when the chain is valid."""
    valid: bool
    first_invalid_index: Optional[int] = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.valid

    def raise_if_invalid(self) -> None:
        """
        Raises:
            ValidationError: If the chain failed validation
        """
        if not self.valid:
            from .ledger import ValidationError
            raise ValidationError(
                f"Invalid block at index {self.first_invalid_index}: {self.reason}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'first_invalid_index': self.first_invalid_index,
            'reason': self.reason,
        }


VALID = ValidationResult(valid=True)


class ChainValidator:
    """
    Recompute-and-compare validation over a sequence of blocks.

    Blocks only need index, timestamp, data, previous_hash, nonce and hash
    attributes; the validator never trusts a block's own compute method.
    """

    def validate(self, chain: Sequence, difficulty: Optional[int] = None) -> ValidationResult:
        """
        Validate a full chain.

        Args:
            chain: Blocks in insertion order, genesis first
            difficulty: If given, also require every non-genesis hash to
                        start with this many '0' hex characters

        Returns:
            ValidationResult with the first failing index, if any
        """
        if not chain:
            return self._fail(0, "Chain is empty")

        genesis = chain[0]
        if genesis.index != 0:
            return self._fail(0, "Genesis index is not 0")
        if genesis.previous_hash != GENESIS_PREV_HASH:
            return self._fail(0, "Genesis previous hash is not '0'")
        if self._recompute(genesis) != genesis.hash:
            return self._fail(0, "Genesis hash mismatch")

        target = '0' * difficulty if difficulty else None

        for i in range(1, len(chain)):
            block = chain[i]
            previous = chain[i - 1]

            if block.index != i:
                return self._fail(i, f"Index mismatch: expected {i}, got {block.index}")
            if self._recompute(block) != block.hash:
                return self._fail(i, "Block hash mismatch")
            if block.previous_hash != previous.hash:
                return self._fail(i, "Previous hash mismatch")
            if target is not None and not block.hash.startswith(target):
                return self._fail(i, "Block does not meet difficulty target")

        return VALID

    @staticmethod
    def _recompute(block) -> str:
        return block_digest(
            block.index,
            block.timestamp,
            block.data,
            block.previous_hash,
            block.nonce
        )

    @staticmethod
    def _fail(index: int, reason: str) -> ValidationResult:
        logger.warning("Chain validation failed at block %d: %s", index, reason)
        return ValidationResult(valid=False, first_invalid_index=index, reason=reason)
