"""Core Layer — pure carnet domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (clock and id factories are injected)

Design Decisions:
    - Functional core separated from imperative shell: the service awaits the store
      around these functions, never inside them
"""
