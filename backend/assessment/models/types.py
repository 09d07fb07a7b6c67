"""Custom SQLAlchemy types for cross-database compatibility.

This module provides custom column types that work across the database
backends used in production (PostgreSQL) and testing (SQLite).
"""

import json
from typing import Any, Optional, List

from sqlalchemy import Integer, Text, TypeDecorator
from sqlalchemy.dialects.postgresql import ARRAY


class IntegerArray(TypeDecorator):
    """
    An integer array type that works with both PostgreSQL and SQLite.

    - On PostgreSQL: Uses native ARRAY(Integer)
    - On SQLite: Stores as JSON text

    Used for the option ids a student selected on a multiple-choice
    question. Values are normalized to a sorted list without duplicates so
    that stored selections compare as sets.

    Usage:
        selected_option_ids = Column(IntegerArray(), nullable=True)
    """

    impl = Text  # Default implementation (used for SQLite)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        """Choose implementation based on database dialect."""
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(Integer))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value: Optional[List[int]], dialect) -> Any:
        """Convert Python list to database format."""
        if value is None:
            return None

        normalized = sorted({int(v) for v in value})
        if dialect.name == "postgresql":
            return normalized
        return json.dumps(normalized)

    def process_result_value(self, value: Any, dialect) -> Optional[List[int]]:
        """Convert database value to Python list."""
        if value is None:
            return None

        if isinstance(value, str):
            value = json.loads(value)
        return [int(v) for v in value]
