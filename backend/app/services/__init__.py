"""Services Layer — async orchestration of the pure carnet core around the record store.

Invariants:
    - Services own IO (store access) and locking; decisions stay in core/

Design Decisions:
    - One service class per aggregate (carnets), injected into routes via app.state
"""
