"""ORM Models — SQLAlchemy declarative models.

Invariants:
    - All models inherit from Base (db/base.py)
    - The carnet collection is stored as one JSON value in kv_records (aggregate root)

Design Decisions:
    - All models imported here so Base.metadata is complete before create_all/autogenerate
"""

from app.models.kv_record import KeyValueRecord  # noqa: F401
