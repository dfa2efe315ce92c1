"""Database package for the staff status bot."""

from .db_manager import DatabaseManager

__all__ = ['DatabaseManager']
