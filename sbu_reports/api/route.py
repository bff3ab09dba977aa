"""
API routes.
"""
from typing import Optional
from fastapi import APIRouter, Body, Depends, HTTPException, status

from sbu_reports.api.schemas import (
    ChatReply, ChatRequest, ChatSessionView, ReportCreate, ReportCreated, ReportPage,
)
from sbu_reports.chat.client import chat_client
from sbu_reports.chat.session import ChatSessionRegistry, get_chat_sessions
from sbu_reports.reports.service import list_reports, submit_report
from sbu_reports.reports.store import TicketStore, get_ticket_store

router = APIRouter()


@router.get("/api/reports", response_model=ReportPage)
async def get_reports(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    store: TicketStore = Depends(get_ticket_store),
) -> ReportPage:
    """List tickets newest-first. Bad page/limit values fall back to defaults."""
    return list_reports(store, page, limit)


@router.post("/api/reports", response_model=ReportCreated, status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: Optional[ReportCreate] = Body(default=None),
    store: TicketStore = Depends(get_ticket_store),
) -> ReportCreated:
    """File a new report. Missing required fields give a 400."""
    return submit_report(store, payload)


@router.post("/api/chat", response_model=ChatReply)
async def send_chat_message(
    request: ChatRequest,
    sessions: ChatSessionRegistry = Depends(get_chat_sessions),
) -> ChatReply:
    """Forward one message to the assistant within a conversation."""
    session = sessions.get_or_create(request.session_id)
    if session.waiting:
        raise HTTPException(status_code=409, detail="A reply is still pending for this conversation")

    reply = await session.submit(request.message)
    return ChatReply(session_id=session.session_id, reply=reply, error=session.error)


@router.get("/api/chat/{session_id}", response_model=ChatSessionView)
async def get_chat_session(
    session_id: str,
    sessions: ChatSessionRegistry = Depends(get_chat_sessions),
) -> ChatSessionView:
    """Current transcript of a conversation."""
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown chat session")
    return ChatSessionView(
        session_id=session.session_id,
        waiting=session.waiting,
        error=session.error,
        messages=session.messages,
    )


@router.get("/")
async def health_check(store: TicketStore = Depends(get_ticket_store)):
    """Check if services are running."""
    chat_healthy = await chat_client.health_check()
    return {
        "status": "healthy" if chat_healthy else "degraded",
        "chat": "connected" if chat_healthy else "disconnected",
        "reports": store.count(),
    }
