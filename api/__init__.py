"""API module for the PayU notification service."""

from .notify_api import create_app, NotifyAPI

__all__ = ['create_app', 'NotifyAPI']
