"""
Entry Signature Stamps

SignatureStamp attaches an integrity tag to each supply-chain entry at
insertion time.

WARNING: SignatureStamp is NOT a digital signature. It is a truncated,
unkeyed SHA-256 tag over (stage, product id, time). Anyone can compute it,
so it cannot authenticate who issued an entry; it only makes gross
tampering of the tag field visible. It is kept as the default to stay
compatible with existing tags.

KeyedSignatureStamp is the opt-in hardened variant: HMAC-SHA256 under a
secret key held by the caller, verifiable with the same key.
"""

import hashlib
import secrets
from datetime import datetime, timezone
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from .hash_codec import epoch_millis


TAG_LENGTH = 16  # Hex characters kept from the SHA-256 digest
HMAC_KEY_SIZE = 32  # 256-bit keys for the keyed variant


def _stage_name(stage) -> str:
    return getattr(stage, 'value', stage)


def _tag_material(stage, product_id: str, timestamp: Optional[datetime]) -> bytes:
    when = timestamp if timestamp is not None else datetime.now(timezone.utc)
    return f"{_stage_name(stage)}_{product_id}_{epoch_millis(when)}".encode('utf-8')


class SignatureStamp:
    """
    Unkeyed integrity tag (placeholder, see module docstring).

    Example:
        >>> stamp = SignatureStamp()
        >>> len(stamp.sign("packaging", "p1"))
        16
    """

    def sign(
        self,
        stage,
        product_id: str,
        timestamp: Optional[datetime] = None
    ) -> str:
        """
        Compute the tag for an entry.

        Args:
            stage: Lifecycle stage (enum or its string value)
            product_id: Product identifier
            timestamp: Instant to bind into the tag (defaults to now)

        Returns:
            First 16 hex characters of SHA-256(stage_productId_millis)
        """
        digest = hashlib.sha256(_tag_material(stage, product_id, timestamp))
        return digest.hexdigest()[:TAG_LENGTH]

    def stamp(self, entry):
        """
        Return entry with digital_signature filled in.

        Entries that already carry a signature are returned unchanged.
        """
        if entry.digital_signature:
            return entry
        return entry.with_signature(self.sign(entry.stage, entry.product_id))


class KeyedSignatureStamp(SignatureStamp):
    """
    HMAC-SHA256 tag under a caller-held secret key.

    The tag binds the entry's own timestamp (not the signing time) so it
    can be re-derived later by verify().
    """

    def __init__(self, key: Optional[bytes] = None):
        """
        Args:
            key: Secret key (>= 16 bytes). A random 256-bit key is generated
                 if omitted; keep it if tags must be verified later.
        """
        if key is None:
            key = secrets.token_bytes(HMAC_KEY_SIZE)
        if len(key) < 16:
            raise ValueError("HMAC key must be at least 16 bytes")
        self._key = key

    @property
    def key(self) -> bytes:
        return self._key

    def _mac(self, stage, product_id: str, timestamp: Optional[datetime]) -> hmac.HMAC:
        mac = hmac.HMAC(self._key, hashes.SHA256())
        mac.update(_tag_material(stage, product_id, timestamp))
        return mac

    def sign(self, stage, product_id: str, timestamp: Optional[datetime] = None) -> str:
        """Full-length hex HMAC-SHA256 tag."""
        return self._mac(stage, product_id, timestamp).finalize().hex()

    def stamp(self, entry):
        if entry.digital_signature:
            return entry
        return entry.with_signature(
            self.sign(entry.stage, entry.product_id, entry.timestamp)
        )

    def verify(self, stage, product_id: str, timestamp: datetime, tag: str) -> bool:
        """
        Check a tag in constant time.

        Returns:
            True if tag was produced under this key for these fields
        """
        try:
            expected = bytes.fromhex(tag)
        except ValueError:
            return False
        try:
            self._mac(stage, product_id, timestamp).verify(expected)
            return True
        except InvalidSignature:
            return False

    def verify_entry(self, entry) -> bool:
        """Verify an entry stamped by this instance."""
        return self.verify(
            entry.stage, entry.product_id, entry.timestamp, entry.digital_signature
        )
