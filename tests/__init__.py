# SupplyLedger Test Suite
"""
Comprehensive test suite including:
- Unit tests per component
- Integration tests through the service layer
- Tamper-detection and concurrency tests

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
