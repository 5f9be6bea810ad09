"""
Persistence and transfer.

- state_store.py: SQLite key/value store with per-key fallback on load
- transfer.py: export/import envelope (all-or-nothing import)
"""
