"""
Agent endpoints.

``/api/agent/stream`` runs the loop and forwards every event as a
Server-Sent Events frame (``event: stream_event``), followed by one
``event: done`` frame. ``/api/agent/run`` is the blocking variant.
Session and event-history endpoints expose the orchestrator's stores.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from ...models.agent import Language
from ...orchestration.events import NormalEvent, StreamEvent, new_id
from ...orchestration.session_store import SessionBusyError
from ...orchestrator import Orchestrator
from ..schemas import (
    ConversationEventsResponse,
    DonePayload,
    ErrorResponse,
    RecentEventsResponse,
    RunRequest,
    RunResponse,
    RunSettings,
    SessionStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_END = object()


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def _sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


def _run_config(orchestrator: Orchestrator, settings: RunSettings):
    try:
        return orchestrator.config.merged(settings.overrides())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get(
    "/api/agent/stream",
    summary="Run the agent with streamed events",
    description=(
        "Starts or resumes a conversation and streams its events as SSE. "
        "Pass session_id and conversation_id to answer a pause."
    ),
    responses={400: {"model": ErrorResponse}},
)
async def agent_stream(
    prompt: Optional[str] = Query(default=None),
    session_id: Optional[str] = Query(default=None),
    conversation_id: Optional[str] = Query(default=None),
    language: Optional[Language] = Query(default=None),
    model: Optional[str] = Query(default=None),
    temperature: Optional[float] = Query(default=None, ge=0.0, le=2.0),
    pause_after_each_step: Optional[bool] = Query(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    if not prompt:
        raise HTTPException(status_code=400, detail="prompt is required")

    run_config = _run_config(orchestrator, RunSettings(
        language=language,
        model=model,
        temperature=temperature,
        pause_after_each_step=pause_after_each_step,
    ))
    queue: asyncio.Queue = asyncio.Queue()

    def forward(envelope: StreamEvent) -> None:
        queue.put_nowait(_sse("stream_event", envelope.model_dump_json()))

    async def run() -> None:
        try:
            result = await orchestrator.start(
                prompt,
                session_id=session_id,
                conversation_id=conversation_id,
                on_event=forward,
                config=run_config,
            )
            done = DonePayload(
                ok=True,
                session_id=result.session_id,
                conversation_id=result.conversation_id,
                is_paused=result.is_paused,
                message="Waiting for user input..." if result.is_paused else "Conversation complete",
            )
        except Exception as e:
            logger.exception(f"Agent stream failed: {e}")
            error = StreamEvent(
                session_id=session_id or "error",
                conversation_id="error",
                event=NormalEvent(id=new_id("error"), content=str(e) or type(e).__name__),
            )
            forward(error)
            done = DonePayload(ok=False, session_id=session_id, message=str(e))
        queue.put_nowait(_sse("done", done.model_dump_json()))
        queue.put_nowait(_END)

    async def event_stream() -> AsyncIterator[str]:
        task = asyncio.create_task(run())
        try:
            while True:
                item = await queue.get()
                if item is _END:
                    break
                yield item
        finally:
            if not task.done():
                logger.info(f"Client disconnected, cancelling run (session={session_id})")
                task.cancel()

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post(
    "/api/agent/run",
    response_model=RunResponse,
    summary="Run the agent to completion or pause",
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def agent_run(
    body: RunRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> RunResponse:
    run_config = _run_config(orchestrator, body)
    try:
        result = await orchestrator.start(
            body.prompt,
            session_id=body.session_id,
            conversation_id=body.conversation_id,
            config=run_config,
        )
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Agent run failed: {e}")
        raise HTTPException(status_code=500, detail=f"Agent run failed: {e}") from e
    return RunResponse(**result.to_dict())


@router.get(
    "/api/sessions/{session_id}",
    response_model=SessionStatusResponse,
    summary="Session status",
    responses={404: {"model": ErrorResponse}},
)
async def session_status(
    session_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> SessionStatusResponse:
    status = await orchestrator.session_status(session_id)
    if not status["conversations"] and not status["is_paused"] and not status["is_running"]:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return SessionStatusResponse(**status)


@router.get(
    "/api/sessions/{session_id}/conversations/{conversation_id}/events",
    response_model=ConversationEventsResponse,
    summary="Recorded events of a conversation",
    responses={404: {"model": ErrorResponse}},
)
def conversation_events(
    session_id: str,
    conversation_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ConversationEventsResponse:
    events = orchestrator.store.conversation_events(session_id, conversation_id)
    if events is None:
        raise HTTPException(
            status_code=404,
            detail=f"Conversation '{conversation_id}' not found in session '{session_id}'",
        )
    return ConversationEventsResponse(
        session_id=session_id, conversation_id=conversation_id, events=events
    )


@router.get(
    "/api/events/recent",
    response_model=RecentEventsResponse,
    summary="Recently published events",
)
def recent_events(
    limit: Optional[int] = Query(default=None, ge=1),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> RecentEventsResponse:
    return RecentEventsResponse(
        events=orchestrator.events.recent(limit),
        stats=orchestrator.events.stats(),
    )
