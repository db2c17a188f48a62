"""
PayU Notification API.

Receives PayU notifications over HTTP and answers with the status code
PayU's retry logic expects.
"""

import asyncio
import logging
from typing import Optional

from aiohttp import web

from config import config
from models.notification import RawNotification
from services.notification_processor import NotificationProcessor

logger = logging.getLogger(__name__)


class NotifyAPI:
    """
    HTTP endpoints for PayU notifications.

    Endpoints:
    - POST /api/payu/notify - Notification for the default store scope
    - POST /api/payu/notify/{store_id} - Notification for a specific store
    - GET /api/health - Health check
    - GET /api/stats - Outcome counters

    Every notification is answered 200 with an empty body, including ones
    that were dropped, so PayU stops redelivering. Only transient failures
    and timeouts are answered 503 so PayU tries again.
    """

    def __init__(
        self,
        processor: NotificationProcessor,
        signature_header: Optional[str] = None,
        default_store_scope: Optional[int] = None,
        request_timeout: Optional[float] = None
    ):
        """
        Initialize the API.

        Args:
            processor: Notification pipeline
            signature_header: Header carrying the signature
            default_store_scope: Store used by the route without a store id
            request_timeout: Seconds before a notification is left unacknowledged
        """
        self.processor = processor
        self.signature_header = signature_header or config.payu.signature_header
        self.default_store_scope = (
            default_store_scope if default_store_scope is not None
            else config.payu.default_store_scope
        )
        self.request_timeout = request_timeout or config.api.request_timeout

    def setup_routes(self, app: web.Application) -> None:
        """
        Set up API routes.

        Args:
            app: aiohttp web application
        """
        app.router.add_post('/api/payu/notify', self.notify)
        app.router.add_post(r'/api/payu/notify/{store_id:\d+}', self.notify)
        app.router.add_get('/api/health', self.health_check)
        app.router.add_get('/api/stats', self.get_stats)

    async def notify(self, request: web.Request) -> web.Response:
        """Handle one PayU notification."""
        store_id = request.match_info.get('store_id')
        store_scope = int(store_id) if store_id is not None else self.default_store_scope

        raw = RawNotification(
            body=await request.read(),
            signature_header=request.headers.get(self.signature_header)
        )

        try:
            outcome = await asyncio.wait_for(
                self.processor.process(raw, store_scope),
                timeout=self.request_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"PayU notification for store {store_scope} timed out after "
                f"{self.request_timeout}s, leaving it unacknowledged"
            )
            return web.Response(status=503)

        return web.Response(status=outcome.http_status)

    async def health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "healthy",
            "service": config.service.name
        })

    async def get_stats(self, request: web.Request) -> web.Response:
        """Get notification outcome counters."""
        return web.json_response(self.processor.get_stats())


def create_app(
    processor: NotificationProcessor,
    signature_header: Optional[str] = None,
    default_store_scope: Optional[int] = None,
    request_timeout: Optional[float] = None
) -> web.Application:
    """
    Create and configure the aiohttp web application.

    Args:
        processor: Notification pipeline
        signature_header: Optional override of the signature header name
        default_store_scope: Optional override of the default store
        request_timeout: Optional override of the processing timeout

    Returns:
        Configured aiohttp Application
    """
    app = web.Application()

    api = NotifyAPI(
        processor=processor,
        signature_header=signature_header,
        default_store_scope=default_store_scope,
        request_timeout=request_timeout
    )

    api.setup_routes(app)

    # Error handling middleware
    @web.middleware
    async def error_middleware(request, handler):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            logger.error(f"Unhandled error: {e}", exc_info=True)
            return web.json_response(
                {"error": "Internal server error"},
                status=500
            )

    app.middlewares.append(error_middleware)

    return app
