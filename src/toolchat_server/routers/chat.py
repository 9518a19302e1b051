"""Chat API endpoints.

This module provides the chat boundary of the server: a fire-and-forget
submission endpoint, the observable round state (polled or streamed via SSE),
and the conversation history.
"""

import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sse_starlette.sse import EventSourceResponse

from toolchat_server.conversation import ChatController, ChatState, Conversation
from toolchat_server.dependencies import get_chat_controller, get_conversation
from toolchat_server.errors import ChatBusyError
from toolchat_server.models.chat import (
    ChatRequest,
    ChatStateResponse,
    ChatSubmitResponse,
    MessageResponse,
    MessagesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _state_response(state: ChatState) -> ChatStateResponse:
    return ChatStateResponse.model_validate(state)


@router.post(
    "",
    response_model=ChatSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a user message",
)
async def submit_message(
    request_body: ChatRequest,
    controller: Annotated[ChatController, Depends(get_chat_controller)],
) -> ChatSubmitResponse:
    """Start a chat round and return immediately.

    The round runs in the background; its result is exposed through
    GET /api/v1/chat/state and GET /api/v1/chat/events.

    Raises:
        HTTPException: 409 if a round is already in flight
    """
    try:
        controller.submit(request_body.message)
    except ChatBusyError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "error": {
                    "code": "chat_busy",
                    "message": str(e),
                    "details": {},
                }
            },
        )

    logger.info("Accepted chat submission")
    return ChatSubmitResponse(accepted=True)


@router.get("/state", response_model=ChatStateResponse, summary="Get chat round state")
async def get_chat_state(
    controller: Annotated[ChatController, Depends(get_chat_controller)],
) -> ChatStateResponse:
    """Return the response text, loading flag and error text."""
    return _state_response(controller.state)


@router.get("/events", summary="Stream chat round state")
async def stream_chat_state(
    request: Request,
    controller: Annotated[ChatController, Depends(get_chat_controller)],
) -> EventSourceResponse:
    """Stream state snapshots via Server-Sent Events (SSE).

    SSE Events:
        - state: A ChatStateResponse snapshot; the first one is the current state
        - done: The round has settled (loading is false)
    """

    async def event_generator():
        """Generate SSE events until the current round settles."""
        queue = controller.subscribe()
        try:
            while True:
                state = await queue.get()
                yield {
                    "event": "state",
                    "data": _state_response(state).model_dump_json(),
                }
                if not state.loading:
                    yield {"event": "done", "data": "{}"}
                    break
                if await request.is_disconnected():
                    logger.warning("Client disconnected from chat state stream")
                    break
        finally:
            controller.unsubscribe(queue)

    return EventSourceResponse(event_generator())


@router.get("/messages", response_model=MessagesResponse, summary="Get conversation")
async def get_messages(
    conversation: Annotated[Conversation, Depends(get_conversation)],
) -> MessagesResponse:
    """Return every turn of the conversation, in order."""
    return MessagesResponse(
        messages=[
            MessageResponse.model_validate(asdict(message))
            for message in conversation.messages
        ]
    )


@router.delete(
    "/messages",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset the conversation",
)
async def clear_messages(
    conversation: Annotated[Conversation, Depends(get_conversation)],
    controller: Annotated[ChatController, Depends(get_chat_controller)],
) -> None:
    """Drop the conversation history (the system prompt is kept).

    Raises:
        HTTPException: 409 if a round is in flight
    """
    if controller.state.loading:
        raise HTTPException(
            status_code=409,
            detail={
                "error": {
                    "code": "chat_busy",
                    "message": "Cannot reset the conversation while a message is being processed",
                    "details": {},
                }
            },
        )
    conversation.clear()
