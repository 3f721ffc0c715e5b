"""
SupplyLedger - tamper-evident provenance ledger for physical products.

Subpackages:
- core_crypto: block digest and signature stamps
- blockchain: entries, blocks, proof of work, ledger, validation
- provenance: history lookup, authenticity and sustainability scoring
- integration: service facade and the standard batch workflow
"""

__version__ = "1.0.0"
