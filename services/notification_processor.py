"""
Notification Processor.

Runs one inbound notification through verification, classification,
decoding and dispatch, and reports a typed outcome. Outcome observers
(logging, metrics) are registered with on_outcome().
"""

import asyncio
import logging
from typing import Callable, Dict, List

from models.notification import (
    OutcomeKind,
    ProcessingOutcome,
    RawNotification,
    VerifiedPayload,
)
from .classifier import classify
from .credentials import CredentialProvider
from .decoders import decode
from .dispatcher import NotificationDispatcher
from .errors import (
    CollaboratorPermanentFailure,
    CollaboratorTransientFailure,
    CredentialsNotConfigured,
    DecodeError,
    MalformedPayload,
    SignatureInvalid,
    UnknownVariant,
)
from .signature import verify_any

logger = logging.getLogger(__name__)


class NotificationProcessor:
    """
    Stateless per-notification pipeline.

    Only a VerifiedPayload ever reaches the classifier; every failure
    along the way ends in a ProcessingOutcome instead of an exception.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        dispatcher: NotificationDispatcher
    ):
        """
        Initialize the processor.

        Args:
            credentials: Source of second keys, queried per notification
            dispatcher: Delivers decoded records to the order side
        """
        self.credentials = credentials
        self.dispatcher = dispatcher
        self._observers: List[Callable[[ProcessingOutcome], asyncio.Future]] = []
        self._stats: Dict[str, int] = {kind.value: 0 for kind in OutcomeKind}

    def on_outcome(self, callback: Callable[[ProcessingOutcome], asyncio.Future]) -> None:
        """
        Register a callback for processing outcomes.

        Args:
            callback: Async function called with every outcome
        """
        self._observers.append(callback)
        logger.debug(f"Registered outcome callback: {callback.__name__}")

    async def verify(self, raw: RawNotification, store_scope: int) -> VerifiedPayload:
        """
        Verify a notification against the store's current second keys.

        The environment comes from the store's configuration, never from
        the (still untrusted) body.

        Raises:
            SignatureInvalid: If no configured key matches
            CredentialsNotConfigured: If the store has no key at all
        """
        environment = await self.credentials.get_environment(store_scope)
        secrets = await self.credentials.get_secrets(store_scope, environment)
        if not secrets:
            raise CredentialsNotConfigured(store_scope, environment.value)

        key_index = verify_any(raw.body, raw.signature_header, secrets)
        if key_index is None:
            if raw.signature_header:
                raise SignatureInvalid("Signature does not match any configured key")
            raise SignatureInvalid("Signature header missing")

        if key_index > 0:
            logger.info(
                f"Notification for store {store_scope} signed with previous "
                f"{environment.value} key"
            )

        return VerifiedPayload(raw=raw, environment=environment, key_index=key_index)

    async def process(self, raw: RawNotification, store_scope: int) -> ProcessingOutcome:
        """
        Process one notification end to end.

        Args:
            raw: Body and signature header as received
            store_scope: Store the notification is addressed to

        Returns:
            ProcessingOutcome describing what happened
        """
        outcome = await self._process(raw, store_scope)
        self._stats[outcome.kind.value] += 1

        for callback in self._observers:
            try:
                await callback(outcome)
            except Exception as e:
                logger.error(f"Error in outcome callback: {e}", exc_info=True)

        return outcome

    async def _process(self, raw: RawNotification, store_scope: int) -> ProcessingOutcome:
        try:
            verified = await self.verify(raw, store_scope)
        except SignatureInvalid as e:
            return ProcessingOutcome(
                kind=OutcomeKind.SIGNATURE_INVALID,
                raw=raw,
                store_scope=store_scope,
                error=e
            )
        except Exception as e:
            # Settings store unreachable; PayU will redeliver
            return ProcessingOutcome(
                kind=OutcomeKind.TRANSIENT_FAILURE,
                raw=raw,
                store_scope=store_scope,
                error=e
            )

        def outcome(kind: OutcomeKind, **kwargs) -> ProcessingOutcome:
            return ProcessingOutcome(
                kind=kind,
                raw=raw,
                store_scope=store_scope,
                environment=verified.environment,
                **kwargs
            )

        try:
            record = decode(classify(verified))
        except MalformedPayload as e:
            return outcome(OutcomeKind.MALFORMED_PAYLOAD, error=e)
        except UnknownVariant as e:
            return outcome(OutcomeKind.UNKNOWN_VARIANT, error=e)
        except DecodeError as e:
            return outcome(OutcomeKind.DECODE_ERROR, error=e)

        try:
            result = await self.dispatcher.dispatch(record)
        except CollaboratorPermanentFailure as e:
            return outcome(OutcomeKind.PERMANENT_FAILURE, record=record, error=e)
        except CollaboratorTransientFailure as e:
            return outcome(OutcomeKind.TRANSIENT_FAILURE, record=record, error=e)

        return outcome(OutcomeKind.PROCESSED, record=record, result=result)

    def get_stats(self) -> Dict[str, int]:
        """
        Get outcome counters.

        Returns:
            Statistics dictionary keyed by outcome kind
        """
        return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        for key in self._stats:
            self._stats[key] = 0
