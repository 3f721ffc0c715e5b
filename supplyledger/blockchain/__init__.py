# Blockchain Module
"""
Provenance ledger implementation including:
- Supply-chain entry model (entry.py)
- Blocks, Proof of Work and the append-only Ledger (ledger.py)
- Full chain validation (validator.py)

Integrity features:
- Immutable blocks and entries (frozen dataclasses)
- Recompute-and-compare validation of every block
- Single-writer appends
"""

_SUBMODULES = {
    'EntryError': 'entry',
    'Stage': 'entry',
    'SupplyChainEntry': 'entry',
    'TestResults': 'entry',
    'ToxicityTest': 'entry',
    'DurabilityTest': 'entry',
    'MaterialComposition': 'entry',
    'SafetyDetails': 'entry',
    'TestOutcome': 'entry',
    'ChainValidator': 'validator',
    'ValidationResult': 'validator',
}


# Lazy imports to avoid RuntimeWarning when running modules directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    import importlib
    module = importlib.import_module(f".{_SUBMODULES.get(name, 'ledger')}", __name__)
    return getattr(module, name)


__all__ = [
    'Block',
    'Ledger',
    'ProofOfWork',
    'LedgerError',
    'MiningError',
    'ValidationError',
    'GENESIS_ENTRY',
    *_SUBMODULES,
]
