"""
Chat API routes
"""
import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.api.deps import get_engine, get_orders, get_sessions
from app.core import settings, logger
from app.core.exceptions import OrderStoreError
from app.orchestration.delivery.machine import ConversationEngine
from app.services.order_store import OrderStore
from app.services.session_store import SessionStore

router = APIRouter()


# Request/Response schemas
class ChatMessageRequest(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    message: str = ""


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    response: str
    conversation_state: str
    requires_awb: Optional[bool] = None
    requires_reschedule: Optional[bool] = None
    show_details: Optional[bool] = None
    end_conversation: Optional[bool] = None
    requires_otp: Optional[bool] = None
    session_expired: Optional[bool] = None
    order_details: Optional[str] = None
    reschedule_options: Optional[List[str]] = None
    whatsapp_sent: Optional[bool] = None


class ResetResponse(BaseModel):
    message: str


@router.post(
    "/chat",
    response_model=ChatMessageResponse,
    response_model_exclude_none=True,
)
async def send_message(
    request: ChatMessageRequest,
    engine: ConversationEngine = Depends(get_engine),
):
    """Send a message to the delivery assistant."""
    if not request.session_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Session ID is required"},
        )

    try:
        reply = await engine.process_message(request.session_id, request.message)
    except Exception:
        logger.exception(f"Chat API error for session {request.session_id}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "response": "I'm having trouble processing your request. Please try again.",
            },
        )

    return ChatMessageResponse(**reply.to_dict())


@router.post("/reset-session/{session_id}", response_model=ResetResponse)
async def reset_session(
    session_id: str,
    sessions: SessionStore = Depends(get_sessions),
    orders: OrderStore = Depends(get_orders),
):
    """Forget a session and restore every order to the sample data."""
    sessions.remove(session_id)
    try:
        await asyncio.to_thread(orders.reset_to_seed)
    except OrderStoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to reset orders",
        )

    logger.info(f"Session {session_id} and all orders reset")
    return ResetResponse(message="Session and all orders reset successfully")


@router.post("/test-session-expiration/{session_id}")
async def expire_session(
    session_id: str,
    sessions: SessionStore = Depends(get_sessions),
):
    """Development helper: make a session expire on its next message."""
    if settings.APP_ENV != "development":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    if not sessions.expire_now(session_id):
        return {"response": "Session not found.", "sessionExpired": True}

    return {"response": "Session manually expired for testing.", "sessionExpired": True}
