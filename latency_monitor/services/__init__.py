"""Services Layer — long-lived async workers: the poller and the stream publisher.

Invariants:
    - Services own asyncio tasks and release them on stop/disconnect
    - Services write to the store only through commit() or commit_many()
"""
