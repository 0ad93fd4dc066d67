"""Infrastructure Layer — record store backends, database sessions, logging.

Invariants:
    - Every backend failure surfaces as StoreError / DatabaseError (core/errors.py)

Design Decisions:
    - Backends implement core protocols structurally (no shared base class)
"""
