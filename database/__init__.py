"""Database module for the PayU notification service."""

from .db import Database, close_db, get_db

__all__ = ['Database', 'close_db', 'get_db']
