"""Declarative base and portable column types shared by every service."""
from decimal import Decimal

from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

Money = Numeric(12, 2, asdecimal=True)
Rate = Numeric(5, 2, asdecimal=True)

ZERO = Decimal("0.00")


class Base(DeclarativeBase):
    pass
