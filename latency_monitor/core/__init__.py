"""Core Layer — domain types, the sample store and pure query/metrics logic.

Invariants:
    - No module in core/ imports from services/, api/ or infrastructure/
    - No network IO and no async code in core/

Design Decisions:
    - Functional core separated from the imperative shell (poller, feed, routes)
"""
