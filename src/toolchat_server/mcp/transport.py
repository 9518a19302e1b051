"""Session transport for capability providers reached over SSE.

A provider is an MCP-style server. The client opens a long-lived event
stream; the provider answers with a named event whose payload carries the
session-scoped message endpoint (``/messages?sessionId=<token>``). Requests
are then JSON-RPC 2.0 POSTs to that endpoint. The response comes back either
in the POST body or, when the provider replies ``202 Accepted``, as a
``message`` event on the stream.

A transport is single use: once closed, a new instance must be constructed to
reconnect, since the session identifier is bound to the discarded stream.
"""

import asyncio
import contextlib
import logging
import re
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from toolchat_server.errors import (
    ConnectError,
    ConnectErrorKind,
    ProviderError,
    TransportError,
    TransportErrorKind,
)
from toolchat_server.mcp.sse import ServerSentEvent, aiter_sse, parse_sse_text
from toolchat_server.mcp.types import JsonRpcResponse, Session, TransportState

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"sessionId=([^&\s]+)")


def parse_session_id(payload: str) -> str | None:
    """Extract the session token from a handshake payload."""
    match = SESSION_ID_PATTERN.search(payload)
    return match.group(1) if match else None


class SessionTransport:
    """Event-streamed session with one capability provider.

    Usage:
        transport = SessionTransport("http://localhost:3333")
        await transport.open()
        response = await transport.call("tools/list")
        await transport.close()
    """

    def __init__(
        self,
        url: str,
        handshake_timeout: float = 5.0,
        request_timeout: float = 30.0,
        sse_path: str = "/sse",
        session_event: str = "endpoint",
        messages_path: str = "/messages",
        client: httpx.AsyncClient | None = None,
        on_closed: Callable[[], None] | None = None,
    ):
        """Initialize the transport without connecting.

        Args:
            url: Base URL of the provider
            handshake_timeout: Seconds to wait for the session event
            request_timeout: Seconds allowed for each POST request
            sse_path: Path of the event stream endpoint
            session_event: Name of the event carrying the session assignment
            messages_path: Fallback path for requests when the handshake
                payload only carries ``sessionId=<token>``
            client: Optional pre-built HTTP client. It is not closed by the
                transport.
            on_closed: Called when the provider ends an open session (the
                event stream drops). Not called for ``close()``.
        """
        self.url = url.rstrip("/")
        self._handshake_timeout = handshake_timeout
        self._request_timeout = request_timeout
        self._sse_path = sse_path
        self._session_event = session_event
        self._messages_path = messages_path

        self._client = client
        self._owns_client = client is None
        self.on_closed = on_closed

        self._state = TransportState.IDLE
        self._session_id: str | None = None
        self._endpoint: httpx.URL | None = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: dict[int | str, asyncio.Future[dict[str, Any]]] = {}
        self._request_id = 0

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def session(self) -> Session:
        """Current session snapshot."""
        return Session(
            provider_url=self.url,
            session_id=self._session_id,
            transport_state=self._state,
        )

    async def open(self) -> None:
        """Perform the SSE handshake and wait for the session assignment.

        Raises:
            ConnectError: TIMEOUT if the session event does not arrive in time,
                PARSE_FAILURE if its payload has no session id, STREAM_ERROR if
                the stream fails or ends first.
            TransportError: NOT_CONNECTED if the transport was already used.
        """
        if self._state is not TransportState.IDLE:
            raise TransportError(
                TransportErrorKind.NOT_CONNECTED,
                f"Transport is {self._state.value}; construct a new one to reconnect",
            )

        logger.info(f"Opening session with provider at {self.url}")
        self._state = TransportState.CONNECTING
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._request_timeout)

        ready: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._reader = asyncio.create_task(self._read_stream(self._client, ready))

        try:
            session_id = await asyncio.wait_for(ready, timeout=self._handshake_timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"No '{self._session_event}' event from {self.url} "
                f"within {self._handshake_timeout}s"
            )
            await self.close()
            raise ConnectError(
                ConnectErrorKind.TIMEOUT,
                f"Timed out after {self._handshake_timeout}s waiting for a session from {self.url}",
            )
        except ConnectError:
            await self.close()
            raise

        self._session_id = session_id
        self._state = TransportState.OPEN
        logger.info(f"Session {session_id} established with {self.url}")

    async def call(
        self, method: str, params: dict[str, Any] | None = None
    ) -> JsonRpcResponse:
        """Send a JSON-RPC request scoped to the current session.

        Args:
            method: JSON-RPC method name
            params: Optional method parameters

        Returns:
            The provider's response envelope (result or error).

        Raises:
            TransportError: NOT_CONNECTED if the session is not open,
                HTTP_FAILURE on a non-success status or HTTP-level failure.
            ProviderError: If the reply is not a valid JSON-RPC response.
        """
        request_id = self._next_request_id()
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            payload["params"] = params

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            response = await self._post(payload)
            data = self._parse_response_body(response, request_id)
            if data is None:
                # Accepted; the response arrives as a message on the stream
                data = await future
        finally:
            self._pending.pop(request_id, None)

        try:
            return JsonRpcResponse.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Malformed {method} response from {self.url}: {data!r}")
            raise ProviderError(
                f"Malformed response to {method} from {self.url}: "
                f"{e.errors()[0]['msg']}"
            ) from e

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a JSON-RPC notification (no id, no response expected)."""
        payload: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        await self._post(payload)

    async def close(self) -> None:
        """Release the event stream and clear the session. Idempotent."""
        if self._state is TransportState.CLOSED and self._reader is None and self._client is None:
            return

        was_open = self._state is TransportState.OPEN
        self._state = TransportState.CLOSED
        self._session_id = None
        self._endpoint = None

        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None

        self._fail_pending("Session closed")

        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None

        if was_open:
            logger.info(f"Session with {self.url} closed")

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        client, endpoint = self._client, self._endpoint
        if self._state is not TransportState.OPEN or client is None or endpoint is None:
            raise TransportError(
                TransportErrorKind.NOT_CONNECTED,
                f"No open session with {self.url}",
            )

        logger.debug(f"Sending {payload.get('method')} to {endpoint}")

        try:
            response = await client.post(
                endpoint,
                json=payload,
                headers={"Accept": "application/json, text/event-stream"},
                timeout=self._request_timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(
                TransportErrorKind.HTTP_FAILURE,
                f"Request to {self.url} failed: {e}",
            ) from e

        if not response.is_success:
            raise TransportError(
                TransportErrorKind.HTTP_FAILURE,
                f"HTTP {response.status_code} from {self.url}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    def _parse_response_body(
        self, response: httpx.Response, request_id: Any
    ) -> dict[str, Any] | None:
        """Return the JSON-RPC response carried in a POST body, if any."""
        text = response.text.strip()
        if not text:
            return None

        content_type = response.headers.get("content-type", "")
        candidates: list[Any] = []
        if "text/event-stream" in content_type or text.startswith("event:"):
            for event in parse_sse_text(text):
                with contextlib.suppress(ValueError):
                    candidates.append(event.json())
        else:
            try:
                candidates.append(response.json())
            except ValueError:
                logger.debug(f"Ignoring non-JSON response body from {self.url}")
                return None

        for data in candidates:
            if isinstance(data, dict) and data.get("id") == request_id:
                return data
        return None

    async def _read_stream(
        self, client: httpx.AsyncClient, ready: asyncio.Future[str]
    ) -> None:
        try:
            async with client.stream(
                "GET",
                f"{self.url}{self._sse_path}",
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self._request_timeout, read=None),
            ) as response:
                if not response.is_success:
                    raise ConnectError(
                        ConnectErrorKind.STREAM_ERROR,
                        f"Event stream at {self.url} returned HTTP {response.status_code}",
                    )

                async for event in aiter_sse(response.aiter_lines()):
                    self._handle_event(event, ready)

        except ConnectError as e:
            if not ready.done():
                ready.set_exception(e)
        except httpx.HTTPError as e:
            logger.warning(f"Event stream from {self.url} failed: {e}")
            if not ready.done():
                ready.set_exception(
                    ConnectError(
                        ConnectErrorKind.STREAM_ERROR,
                        f"Event stream at {self.url} failed: {e}",
                    )
                )
        finally:
            if not ready.done():
                ready.set_exception(
                    ConnectError(
                        ConnectErrorKind.STREAM_ERROR,
                        f"Event stream at {self.url} ended before a session was assigned",
                    )
                )
            if self._state is TransportState.OPEN:
                logger.warning(f"Event stream from {self.url} dropped; session closed")
                self._state = TransportState.CLOSED
                self._session_id = None
                self._endpoint = None
                self._fail_pending("Session dropped")
                if self.on_closed is not None:
                    self.on_closed()

    def _handle_event(self, event: ServerSentEvent, ready: asyncio.Future[str]) -> None:
        if event.event == self._session_event:
            if ready.done():
                logger.warning(f"Ignoring repeated '{event.event}' event from {self.url}")
                return
            session_id = parse_session_id(event.data)
            if session_id is None:
                ready.set_exception(
                    ConnectError(
                        ConnectErrorKind.PARSE_FAILURE,
                        f"Could not parse a session id from {event.data!r}",
                    )
                )
                return
            self._endpoint = self._resolve_endpoint(event.data.strip(), session_id)
            ready.set_result(session_id)
            return

        if self._state is not TransportState.OPEN:
            logger.debug(f"Ignoring '{event.event}' event before session assignment")
            return

        if event.event != "message":
            logger.debug(f"Ignoring '{event.event}' event from {self.url}")
            return

        try:
            data = event.json()
        except ValueError:
            logger.warning(f"Discarding malformed message from {self.url}")
            return

        if not isinstance(data, dict):
            return
        future = self._pending.get(data.get("id"))
        if future is not None and not future.done():
            future.set_result(data)
        else:
            logger.debug(f"Unsolicited message from {self.url}: {event.data[:200]}")

    def _resolve_endpoint(self, payload: str, session_id: str) -> httpx.URL:
        base = httpx.URL(f"{self.url}/")
        if payload.startswith(("/", "http://", "https://")):
            return base.join(payload)
        return base.join(f"{self._messages_path}?sessionId={session_id}")

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(
                    TransportError(TransportErrorKind.NOT_CONNECTED, reason)
                )
        self._pending.clear()
