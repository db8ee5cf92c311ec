"""
Ledger Kernel

Shared foundation for the ledger consistency and statutory return engine:
- Typed exceptions with machine-readable codes
- Structured JSON logging with request-scoped context
- Pure domain values (account polarity, fiscal-year policy, workflows,
  ledger lines, invoices)
- SQLAlchemy base classes and the compare-and-set status store
"""

__version__ = "0.1.0"
