"""API Layer — FastAPI routes, dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints except the SSE stream return structured JSON responses

Design Decisions:
    - Thin routes delegate to core/services; shared objects come from app.state via deps
"""
