"""API Layer — FastAPI routes and global error handlers.

Invariants:
    - API layer translates HTTP <-> service calls, nothing more

Design Decisions:
    - Error handlers registered from one module (error_handlers.py)
"""
