"""
Workbench Modules.

Domain modules over the workbench kernel.  Each module contains:
- Domain models (the nouns, as frozen snapshots)
- Workflows (state machines)
- ORM persistence models

Modules:
- entries: revenue/expense/transfer entries and their approval lifecycle
- rfp: requests for payment attached to expense entries
- bookings: operational booking lookup, resolution and search
"""
