# Provenance Module
"""
Read-side services over the ledger:
- Product / batch history lookup (index.py)
- Authenticity confidence scoring (authenticity.py)
- Sustainability metrics (sustainability.py)
"""
