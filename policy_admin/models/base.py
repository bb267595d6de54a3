from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.x Declarative base for ORM models."""

    pass


def enum_column_type(enum_cls: type[PyEnum], name: str) -> Enum:
    """Store an Enum by its value in a plain VARCHAR (portable across SQLite/PostgreSQL)."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
