"""
Database package for Editorial Desk.
"""

from .base import (
    Base,
    get_engine,
    get_session_local,
    init_database,
    unit_of_work,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session_local",
    "init_database",
    "unit_of_work",
]
