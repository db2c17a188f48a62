"""Services module for the PayU notification service."""

from .credentials import CredentialProvider, DatabaseCredentialProvider, EnvCredentialProvider
from .dispatcher import NotificationDispatcher
from .notification_processor import NotificationProcessor
from .orders import DatabaseOrderCollaborator, OrderCollaborator
from .outcome_logger import log_outcome

__all__ = [
    'CredentialProvider',
    'DatabaseCredentialProvider',
    'EnvCredentialProvider',
    'NotificationDispatcher',
    'NotificationProcessor',
    'DatabaseOrderCollaborator',
    'OrderCollaborator',
    'log_outcome'
]
