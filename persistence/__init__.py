"""Local replica persistence adapters."""

from persistence.sqlite_repository import ENTITY_TABLES, SQLiteRepository

__all__ = ['ENTITY_TABLES', 'SQLiteRepository']
