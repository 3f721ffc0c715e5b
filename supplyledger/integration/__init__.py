# Integration Module
"""
Service layer that records product batches on the ledger and answers
provenance, authenticity and sustainability queries.
"""

# Lazy imports to avoid RuntimeWarning when running modules directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    import importlib
    module = 'workflow' if name in _WORKFLOW_NAMES else 'service'
    return getattr(importlib.import_module(f".{module}", __name__), name)


_WORKFLOW_NAMES = {
    'MaterialCertificate',
    'ComplianceFlags',
    'batch_workflow_entries',
    'SAMPLE_CERTIFICATES',
    'SAMPLE_PRODUCTS',
}

__all__ = [
    'SupplyChainService',
    'ChainStats',
    *sorted(_WORKFLOW_NAMES),
]
