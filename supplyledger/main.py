"""
SupplyLedger - Main Entry Point

Seeds a ledger with the sample catalogue and prints what the service
layer would see: chain statistics, provenance trails, authenticity
verdicts and sustainability metrics.

Difficulty and thresholds come from the environment (see config.py).
"""

import logging
import sys

from .config import LedgerConfig
from .integration.service import SupplyChainService
from .integration.workflow import SAMPLE_PRODUCTS


def main() -> int:
    """Main entry point for SupplyLedger."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    print("=" * 50)
    print("Welcome to SupplyLedger")
    print("=" * 50)
    print(f"\nMining difficulty: {config.difficulty}")

    service = SupplyChainService(config=config)
    service.initialize_sample_data()

    stats = service.stats()
    print("\nChain statistics:")
    for key, value in stats.to_dict().items():
        print(f"  {key}: {value}")

    for product_id, batch_id in SAMPLE_PRODUCTS:
        service.print_batch_history(batch_id)
        result = service.verify(product_id, batch_id)
        metrics = service.sustainability_metrics(product_id)
        print(f"  authentic: {result.is_authentic} (confidence {result.confidence})")
        print(f"  sustainability score: {metrics.sustainability_score}")

    return 0 if stats.chain_valid else 1


if __name__ == "__main__":
    sys.exit(main())
