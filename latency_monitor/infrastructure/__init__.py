"""Infrastructure Layer — network clients and cross-cutting concerns.

Invariants:
    - All external calls wrapped with timeout and error mapping to core/errors.py
    - Failures of optional integrations (Atlas) are logged, never raised into the app

Design Decisions:
    - Thin wrappers over raw clients (asyncio streams, websockets, httpx)
"""
