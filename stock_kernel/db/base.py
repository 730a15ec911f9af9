"""
Module: stock_kernel.db.base
Responsibility: Declarative base for the kernel's SQLAlchemy models, with
    the column type conventions and constraint naming shared by every table.
Architecture position: Kernel > DB.  Lowest-level import target for ORM code.
    MUST NOT import from services/, selectors/ or storage/.

Invariants enforced:
    - Timestamps are always timezone-aware (DateTime(timezone=True)).
    - Version counters are BigInteger so they cannot overflow in practice.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }
