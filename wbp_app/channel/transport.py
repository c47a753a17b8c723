"""In-process request/response channel with broadcast to views."""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from ..errors import ChannelUnreachableError

logger = structlog.get_logger(__name__)

RequestHandler = Callable[[dict[str, Any]], Awaitable[Optional[dict[str, Any]]]]
BroadcastListener = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class LocalMessageChannel:
    """
    Request/response transport between asyncio tasks.

    The background controller attaches a handler with ``serve``; while no
    handler is attached (background not running) every ``send`` fails with
    ``ChannelUnreachableError``. Requests carry no shared objects, only
    plain dictionaries.
    """

    def __init__(self, request_timeout_ms: int = 5000):
        self.request_timeout_ms = request_timeout_ms
        self._handler: Optional[RequestHandler] = None
        self._listeners: list[BroadcastListener] = []

    @property
    def connected(self) -> bool:
        return self._handler is not None

    def serve(self, handler: RequestHandler) -> None:
        self._handler = handler
        logger.info("Channel handler attached", handler=getattr(handler, "__name__", repr(handler)))

    def close(self) -> None:
        self._handler = None
        logger.info("Channel handler detached")

    async def send(self, message: dict[str, Any]) -> dict[str, Any]:
        """
        Deliver a request and wait for the response.

        Raises:
            ChannelUnreachableError: If nothing is serving, the handler
                failed or timed out, or it returned no response
        """
        action = message.get("action") if isinstance(message, dict) else None
        handler = self._handler

        if handler is None:
            raise ChannelUnreachableError("No background controller is serving the channel", action=action)

        try:
            response = await asyncio.wait_for(
                handler(dict(message)),
                timeout=self.request_timeout_ms / 1000
            )
        except asyncio.TimeoutError as e:
            raise ChannelUnreachableError(
                f"Request timed out after {self.request_timeout_ms}ms", action=action
            ) from e
        except Exception as e:
            raise ChannelUnreachableError(f"Request handler failed: {e}", action=action) from e

        if response is None:
            raise ChannelUnreachableError("Handler returned no response", action=action)

        return response

    def add_listener(self, listener: BroadcastListener) -> Callable[[], None]:
        """Register a view for broadcasts; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def broadcast(self, message: dict[str, Any]) -> int:
        """
        Deliver a notification to every registered view.

        Failures are ignored: a view may be closing while the message is in
        flight.

        Returns:
            Number of listeners that received the message
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                result = listener(dict(message))
                if asyncio.iscoroutine(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.debug(
                    "Broadcast listener failed",
                    action=message.get("action"),
                    error=str(e)
                )
        return delivered
