"""Unit tests for SessionTransport.

The provider is simulated with ``httpx.MockTransport``: the event stream is
an async generator fed from a queue so events can be pushed after the
handshake.
"""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from toolchat_server.errors import (
    ConnectError,
    ConnectErrorKind,
    ProviderError,
    TransportError,
    TransportErrorKind,
)
from toolchat_server.mcp.transport import SessionTransport, parse_session_id
from toolchat_server.mcp.types import TransportState

HANDSHAKE = b"event: endpoint\ndata: /messages?sessionId=abc123\n\n"


class FakeProvider:
    """Serves an event stream and a JSON-RPC message endpoint."""

    def __init__(self, handshake=HANDSHAKE, post_status=200, deliver="body"):
        self.handshake = handshake
        self.post_status = post_status
        self.deliver = deliver
        self.events: asyncio.Queue = asyncio.Queue()
        self.requests = []

    async def stream(self):
        if self.handshake:
            yield self.handshake
        while True:
            chunk = await self.events.get()
            if chunk is None:
                return
            yield chunk

    def push_message(self, payload):
        self.events.put_nowait(f"event: message\ndata: {json.dumps(payload)}\n\n".encode())

    def end_stream(self):
        self.events.put_nowait(None)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=self.stream(),
            )

        payload = json.loads(request.content)
        self.requests.append((request.url, payload))

        if self.post_status != 200:
            return httpx.Response(self.post_status, text="boom")
        if "id" not in payload:
            return httpx.Response(202)

        reply = {
            "jsonrpc": "2.0",
            "id": payload["id"],
            "result": {"echo": payload["method"]},
        }
        if self.deliver == "malformed":
            reply = {"jsonrpc": "2.0", "id": payload["id"], "error": "boom"}
        if self.deliver == "stream":
            self.push_message(reply)
            return httpx.Response(202)
        if self.deliver == "sse-body":
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                text=f"event: message\ndata: {json.dumps(reply)}\n\n",
            )
        return httpx.Response(200, json=reply)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest_asyncio.fixture
async def http_client(provider):
    client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
    yield client
    await client.aclose()


@pytest.fixture
def transport(http_client):
    return SessionTransport(
        "http://provider.test", handshake_timeout=0.5, client=http_client
    )


async def wait_for_state(transport, state, timeout=1.0):
    async def poll():
        while transport.state is not state:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


def test_parse_session_id():
    """Test extracting the token from handshake payloads."""
    assert parse_session_id("/messages?sessionId=abc123") == "abc123"
    assert parse_session_id("/messages?sessionId=abc&other=1") == "abc"
    assert parse_session_id("/messages") is None


class TestOpen:
    """Tests for the session handshake."""

    @pytest.mark.asyncio
    async def test_open_assigns_session(self, transport):
        """Test that the endpoint event opens the session."""
        assert transport.state is TransportState.IDLE

        await transport.open()

        assert transport.state is TransportState.OPEN
        assert transport.session_id == "abc123"
        assert transport.session.session_id == "abc123"

        await transport.close()

    @pytest.mark.asyncio
    async def test_open_with_unparseable_payload(self):
        """Test that a payload without a session id is a parse failure."""
        provider = FakeProvider(handshake=b"event: endpoint\ndata: /messages\n\n")
        client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
        transport = SessionTransport("http://provider.test", client=client)

        with pytest.raises(ConnectError) as exc_info:
            await transport.open()

        assert exc_info.value.kind is ConnectErrorKind.PARSE_FAILURE
        assert transport.state is TransportState.CLOSED
        assert transport.session_id is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_open_times_out(self):
        """Test that a silent provider leaves the transport closed."""
        provider = FakeProvider(handshake=None)
        client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
        transport = SessionTransport(
            "http://provider.test", handshake_timeout=0.05, client=client
        )

        with pytest.raises(ConnectError) as exc_info:
            await transport.open()

        assert exc_info.value.kind is ConnectErrorKind.TIMEOUT
        assert transport.state is TransportState.CLOSED
        assert transport.session_id is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_open_fails_when_stream_is_rejected(self):
        """Test that a non-success stream response is a stream error."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404))
        )
        transport = SessionTransport("http://provider.test", client=client)

        with pytest.raises(ConnectError) as exc_info:
            await transport.open()

        assert exc_info.value.kind is ConnectErrorKind.STREAM_ERROR
        assert transport.state is TransportState.CLOSED
        await client.aclose()

    @pytest.mark.asyncio
    async def test_open_fails_when_stream_ends_early(self):
        """Test that a stream closing before the handshake is a stream error."""
        provider = FakeProvider(handshake=b": hello\n\n")
        provider.end_stream()
        client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
        transport = SessionTransport("http://provider.test", client=client)

        with pytest.raises(ConnectError) as exc_info:
            await transport.open()

        assert exc_info.value.kind is ConnectErrorKind.STREAM_ERROR
        await client.aclose()

    @pytest.mark.asyncio
    async def test_open_twice_is_rejected(self, transport):
        """Test that a transport cannot be reopened."""
        await transport.open()
        await transport.close()

        with pytest.raises(TransportError) as exc_info:
            await transport.open()

        assert exc_info.value.kind is TransportErrorKind.NOT_CONNECTED


class TestCall:
    """Tests for session-scoped JSON-RPC requests."""

    @pytest.mark.asyncio
    async def test_call_before_open(self, transport, provider):
        """Test that requests without a session fail without any I/O."""
        with pytest.raises(TransportError) as exc_info:
            await transport.call("tools/list")

        assert exc_info.value.kind is TransportErrorKind.NOT_CONNECTED
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_call_posts_to_session_endpoint(self, transport, provider):
        """Test that the request carries the session id and method."""
        await transport.open()

        response = await transport.call("tools/list", {"cursor": "c1"})

        url, payload = provider.requests[0]
        assert url.path == "/messages"
        assert url.params["sessionId"] == "abc123"
        assert payload["jsonrpc"] == "2.0"
        assert payload["method"] == "tools/list"
        assert payload["params"] == {"cursor": "c1"}
        assert response.id == payload["id"]
        assert response.result == {"echo": "tools/list"}

        await transport.close()

    @pytest.mark.asyncio
    async def test_request_ids_increase(self, transport, provider):
        """Test that each request gets a fresh id."""
        await transport.open()

        await transport.call("a")
        await transport.call("b")

        ids = [payload["id"] for _, payload in provider.requests]
        assert ids[0] != ids[1]

        await transport.close()

    @pytest.mark.asyncio
    async def test_response_in_event_stream_body(self, http_client, provider):
        """Test that an SSE-framed POST body is parsed."""
        provider.deliver = "sse-body"
        transport = SessionTransport("http://provider.test", client=http_client)
        await transport.open()

        response = await transport.call("initialize")

        assert response.result == {"echo": "initialize"}
        await transport.close()

    @pytest.mark.asyncio
    async def test_response_delivered_on_stream(self, http_client, provider):
        """Test that a 202 response is matched to the stream message by id."""
        provider.deliver = "stream"
        transport = SessionTransport("http://provider.test", client=http_client)
        await transport.open()

        response = await asyncio.wait_for(transport.call("tools/call"), 1.0)

        assert response.result == {"echo": "tools/call"}
        await transport.close()

    @pytest.mark.asyncio
    async def test_http_failure(self, transport, provider):
        """Test that a non-success status is an HTTP failure with its status."""
        await transport.open()
        provider.post_status = 500

        with pytest.raises(TransportError) as exc_info:
            await transport.call("tools/list")

        assert exc_info.value.kind is TransportErrorKind.HTTP_FAILURE
        assert exc_info.value.status_code == 500
        assert transport.state is TransportState.OPEN

        await transport.close()

    @pytest.mark.asyncio
    async def test_notify_sends_no_id(self, transport, provider):
        """Test that notifications carry no request id."""
        await transport.open()

        await transport.notify("notifications/initialized")

        _, payload = provider.requests[0]
        assert payload == {"jsonrpc": "2.0", "method": "notifications/initialized"}

        await transport.close()


class TestClose:
    """Tests for releasing the session."""

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, transport):
        """Test that closing twice is harmless."""
        await transport.open()

        await transport.close()
        await transport.close()

        assert transport.state is TransportState.CLOSED
        assert transport.session_id is None

    @pytest.mark.asyncio
    async def test_call_after_close(self, transport, provider):
        """Test that a closed transport rejects requests."""
        await transport.open()
        await transport.close()

        with pytest.raises(TransportError) as exc_info:
            await transport.call("tools/list")

        assert exc_info.value.kind is TransportErrorKind.NOT_CONNECTED
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_stream_drop_closes_session(self, transport, provider):
        """Test that the session ends when the provider closes the stream."""
        await transport.open()

        provider.end_stream()
        await wait_for_state(transport, TransportState.CLOSED)

        assert transport.session_id is None
        with pytest.raises(TransportError):
            await transport.call("tools/list")

    @pytest.mark.asyncio
    async def test_stream_drop_notifies_owner(self, http_client, provider):
        """Test that on_closed fires when the provider ends the stream."""
        dropped = []
        transport = SessionTransport(
            "http://provider.test",
            client=http_client,
            on_closed=lambda: dropped.append(True),
        )
        await transport.open()

        provider.end_stream()
        await wait_for_state(transport, TransportState.CLOSED)

        assert dropped == [True]
        await transport.close()
        assert dropped == [True]

    @pytest.mark.asyncio
    async def test_close_does_not_notify_owner(self, http_client):
        dropped = []
        transport = SessionTransport(
            "http://provider.test",
            client=http_client,
            on_closed=lambda: dropped.append(True),
        )
        await transport.open()

        await transport.close()

        assert dropped == []

    @pytest.mark.asyncio
    async def test_stream_drop_fails_pending_call(self, http_client, provider):
        """Test that a call awaiting a stream reply fails when the stream drops."""
        provider.deliver = "stream"
        transport = SessionTransport("http://provider.test", client=http_client)
        await transport.open()
        # Hold the reply back so the call is still pending when the stream ends
        provider.push_message = lambda payload: None

        call = asyncio.create_task(transport.call("tools/call"))
        await asyncio.sleep(0.05)
        provider.end_stream()

        with pytest.raises(TransportError) as exc_info:
            await asyncio.wait_for(call, 1.0)

        assert exc_info.value.kind is TransportErrorKind.NOT_CONNECTED
        await transport.close()


class TestMalformedReply:
    """Tests for replies that are not valid JSON-RPC responses."""

    @pytest.mark.asyncio
    async def test_malformed_reply_is_provider_error(self, transport, provider):
        """Test that an unparseable envelope raises ProviderError, not a validation error."""
        provider.deliver = "malformed"
        await transport.open()

        with pytest.raises(ProviderError) as exc_info:
            await transport.call("tools/call", {"name": "get_nodes", "arguments": {}})

        assert "tools/call" in str(exc_info.value)
        assert transport.state is TransportState.OPEN

        await transport.close()
