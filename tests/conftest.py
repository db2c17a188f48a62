"""Shared fixtures for the PayU notification service tests."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from database.db import Database
from models.notification import OrderStatus, RefundStatus
from services.credentials import EnvCredentialProvider
from services.dispatcher import NotificationDispatcher
from services.errors import OrderNotFound
from services.notification_processor import NotificationProcessor
from services.orders import OrderCollaborator


PRODUCTION_KEY = b'prod-second-key'
SANDBOX_KEY = b'sandbox-second-key'


class FakeOrderCollaborator(OrderCollaborator):
    """
    In-memory order side that records every call.

    Repeated identical updates are no-ops, like the real collaborator;
    `transitions` lists only updates that changed state.
    """

    def __init__(self, known_orders: Tuple[str, ...] = ('ORD1', 'ORD2')):
        self.payment_status: Dict[str, Optional[OrderStatus]] = {o: None for o in known_orders}
        self.refund_status: Dict[Tuple[str, str], RefundStatus] = {}
        self.payment_calls: List[Tuple[str, OrderStatus, Dict[str, Any]]] = []
        self.refund_calls: List[Tuple[str, RefundStatus, Optional[str]]] = []
        self.transitions: List[Tuple[str, str]] = []
        self.fail_with: Optional[Exception] = None

    async def apply_payment_status(self, ext_order_id, status, details):
        self.payment_calls.append((ext_order_id, status, details))
        if self.fail_with:
            raise self.fail_with
        if ext_order_id not in self.payment_status:
            raise OrderNotFound(ext_order_id)
        if self.payment_status[ext_order_id] == status:
            return False
        self.payment_status[ext_order_id] = status
        self.transitions.append((ext_order_id, status.value))
        return True

    async def apply_refund_status(self, ext_order_id, status, refund_id):
        self.refund_calls.append((ext_order_id, status, refund_id))
        if self.fail_with:
            raise self.fail_with
        if ext_order_id not in self.payment_status:
            raise OrderNotFound(ext_order_id)
        key = (ext_order_id, refund_id or '')
        if self.refund_status.get(key) == status:
            return False
        self.refund_status[key] = status
        self.transitions.append((ext_order_id, f"refund:{status.value}"))
        return True


@pytest.fixture
def environ() -> Dict[str, str]:
    """Mutable environment backing the credential provider."""
    return {
        'PAYU_USE_SANDBOX': 'false',
        'PAYU_SECOND_KEY': PRODUCTION_KEY.decode(),
        'PAYU_SANDBOX_SECOND_KEY': SANDBOX_KEY.decode()
    }


@pytest.fixture
def credentials(environ) -> EnvCredentialProvider:
    return EnvCredentialProvider(environ)


@pytest.fixture
def orders() -> FakeOrderCollaborator:
    return FakeOrderCollaborator()


@pytest.fixture
def processor(credentials, orders) -> NotificationProcessor:
    return NotificationProcessor(
        credentials=credentials,
        dispatcher=NotificationDispatcher(orders)
    )


@pytest.fixture
async def db():
    """In-memory SQLite database with the service schema."""
    database = Database('sqlite:///:memory:')
    await database.connect()
    await database.init_schema()
    yield database
    await database.disconnect()
