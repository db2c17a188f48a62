#!/usr/bin/env python3
"""
PayU Notification Service.

Main entry point that wires the notification pipeline:
- Credential provider for per-store second keys
- Order collaborator applying status updates
- Notification processor and outcome logging
- HTTP endpoint receiving PayU notifications

Usage:
    python main.py

Environment variables:
    See config.py for all configuration options.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from aiohttp import web

from config import config
from database.db import Database, close_db
from services.credentials import CredentialProvider, DatabaseCredentialProvider, EnvCredentialProvider
from services.dispatcher import NotificationDispatcher
from services.notification_processor import NotificationProcessor
from services.orders import DatabaseOrderCollaborator
from services.outcome_logger import log_outcome
from api.notify_api import create_app


# Configure logging
def setup_logging():
    """Configure logging based on config."""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if config.logging.file:
        # Ensure log directory exists
        log_dir = os.path.dirname(config.logging.file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(config.logging.file))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers
    )

    # Reduce noise from third-party libraries
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class PayUNotificationService:
    """
    Main service orchestrator.

    Coordinates all components of the notification service:
    - Database connection
    - Credential provider and order collaborator
    - Notification processor
    - HTTP server
    """

    def __init__(self):
        self.db: Optional[Database] = None
        self.credentials: Optional[CredentialProvider] = None
        self.processor: Optional[NotificationProcessor] = None
        self.api_app: Optional[web.Application] = None
        self.api_runner: Optional[web.AppRunner] = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start all services."""
        logger.info("=" * 60)
        logger.info(f"Starting {config.service.name}")
        logger.info("=" * 60)

        # Validate configuration
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError("Invalid configuration")

        # Initialize database
        logger.info("Initializing database...")
        self.db = Database()
        await self.db.connect()
        await self.db.init_schema()

        # Initialize services
        logger.info("Initializing services...")

        if config.payu.credential_source == 'env':
            self.credentials = EnvCredentialProvider()
        else:
            self.credentials = DatabaseCredentialProvider(self.db)

        dispatcher = NotificationDispatcher(DatabaseOrderCollaborator(self.db))

        self.processor = NotificationProcessor(
            credentials=self.credentials,
            dispatcher=dispatcher
        )

        # Register outcome logging
        self.processor.on_outcome(log_outcome)

        # Start API server
        logger.info("Starting API server...")
        self.api_app = create_app(processor=self.processor)

        self.api_runner = web.AppRunner(
            self.api_app,
            shutdown_timeout=config.service.shutdown_timeout
        )
        await self.api_runner.setup()

        site = web.TCPSite(
            self.api_runner,
            config.api.host,
            config.api.port
        )
        await site.start()

        logger.info("=" * 60)
        logger.info("Service started successfully!")
        logger.info(f"Notify URL: http://{config.api.host}:{config.api.port}/api/payu/notify")
        logger.info(f"Credential source: {config.payu.credential_source}")
        logger.info("=" * 60)

    async def stop(self) -> None:
        """Stop all services gracefully."""
        logger.info("Initiating graceful shutdown...")

        # Stop accepting new requests
        if self.api_runner:
            await self.api_runner.cleanup()

        # Close database
        if self.db:
            await self.db.disconnect()
        await close_db()

        logger.info("Shutdown complete")
        self._shutdown_event.set()

    async def run(self) -> None:
        """Run the service until shutdown signal."""
        await self.start()

        # Wait for shutdown signal
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        """Request service shutdown."""
        asyncio.create_task(self.stop())


def handle_signal(service: PayUNotificationService, sig: signal.Signals) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {sig.name}, initiating shutdown...")
    service.request_shutdown()


async def main() -> None:
    """Main entry point."""
    setup_logging()

    service = PayUNotificationService()

    # Set up signal handlers
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda s=sig: handle_signal(service, s)
        )

    try:
        await service.run()
    except Exception as e:
        logger.error(f"Service error: {e}", exc_info=True)
        await service.stop()
        sys.exit(1)


if __name__ == '__main__':
    asyncio.run(main())
