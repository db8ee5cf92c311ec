"""
Ledger Modules.

Stateful orchestration over the pure kernel and engines.  Each module
contains:
- Domain models (the nouns)
- Workflows (state machines)
- Pure lifecycle functions
- ORM models and a service owning the transaction boundary

Modules:
- journal: Chart of accounts, journal entries, approval and posting
- gst: GSTR-1 / GSTR-3B returns, filing payloads, FY statistics
- budget: Budgets and cash-flow forecasts with versioning
- reporting: Financial statements, comparisons, CSV export (read-only)
"""
