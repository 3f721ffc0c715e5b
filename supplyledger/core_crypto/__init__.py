# Core Crypto Module
"""
Hashing primitives for the ledger:
- Canonical JSON + SHA-256 block digest (hash_codec.py)
- Entry signature stamps, unkeyed and HMAC (signature.py)
"""
