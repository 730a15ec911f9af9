"""
Stock Kernel - local inventory ledger.

A single-document inventory system with:
- Category and product catalog with unique SKUs
- Append-only stock movement ledger with reason-code validation
- Audit log of every committed movement
- Optimistic-concurrency persistence to a key-value backend
- JSON export / import
"""

__version__ = "0.1.0"
