"""Fire-and-forget chat submission with observable state.

API handlers call ``submit`` and return immediately; the round runs as a
background task. Its outcome is published as a ``ChatState`` snapshot
(response text, loading flag, error text) that clients poll or stream.
"""

import asyncio
import logging
from dataclasses import dataclass

from toolchat_server.conversation.orchestrator import ConversationOrchestrator
from toolchat_server.errors import ChatBusyError, OrchestrationError, ToolchatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatState:
    """Snapshot of the chat round state."""

    response: str | None = None
    loading: bool = False
    error: str | None = None
    error_code: str | None = None


class ChatController:
    """Runs chat rounds in the background and publishes their state."""

    def __init__(self, orchestrator: ConversationOrchestrator):
        self.orchestrator = orchestrator
        self._state = ChatState()
        self._task: asyncio.Task[None] | None = None
        self._subscribers: list[asyncio.Queue[ChatState]] = []

    @property
    def state(self) -> ChatState:
        return self._state

    def submit(self, text: str) -> None:
        """Start a chat round without waiting for it.

        Raises:
            ChatBusyError: If a round is already in flight
        """
        if self._state.loading:
            raise ChatBusyError("A message is already being processed")

        self._set_state(ChatState(response=None, loading=True, error=None))
        self._task = asyncio.create_task(self._run(text))

    async def wait(self) -> ChatState:
        """Wait for the in-flight round (if any) and return the settled state."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self._state

    def subscribe(self) -> asyncio.Queue[ChatState]:
        """Register for state snapshots; the current state is queued first."""
        queue: asyncio.Queue[ChatState] = asyncio.Queue()
        queue.put_nowait(self._state)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ChatState]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def shutdown(self) -> None:
        """Cancel an in-flight round."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Cancelled in-flight chat round on shutdown")

    async def _run(self, text: str) -> None:
        try:
            response = await self.orchestrator.submit(text)
        except ToolchatError as e:
            code = e.kind.value if isinstance(e, OrchestrationError) else "model_error"
            self._set_state(ChatState(loading=False, error=str(e), error_code=code))
            return
        except asyncio.CancelledError:
            self._set_state(ChatState(loading=False, error="Cancelled", error_code="cancelled"))
            raise
        except Exception as e:
            logger.exception("Unexpected error during chat round")
            self._set_state(
                ChatState(loading=False, error=f"Unexpected error: {e}", error_code="internal_error")
            )
            return

        self._set_state(ChatState(response=response, loading=False))

    def _set_state(self, state: ChatState) -> None:
        self._state = state
        for queue in list(self._subscribers):
            queue.put_nowait(state)
