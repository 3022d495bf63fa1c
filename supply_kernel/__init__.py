"""
Supply Kernel - lot ledger for medical supplies

Per-label lot buckets with:
- Creation-time (FEFO) consumption
- Label-scoped atomic transactions
- Newest-first audit history, amendable only by correction
"""

__version__ = "0.1.0"
