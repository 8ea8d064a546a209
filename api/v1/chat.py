from fastapi import APIRouter, Depends, HTTPException, UploadFile
from tortoise import timezone

from api.deps import get_current_user, get_typing_service, require_role
from core.config import settings
from core.logger import chat_logger
from models.chat_session import ChatSession, SessionStatus
from models.user import User
from schemas.chat import CreateSessionRequest, SendMessageRequest, TypingRequest
from services.chat_service import ChatService
from services.typing_service import TypingService
from services.upload_service import UploadService
from services.websocket_manager import WebSocketManager

router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])

ws_manager = WebSocketManager()


async def get_visible_session(session_id: int, user: User) -> ChatSession:
    session = await ChatSession.get_or_none(id=session_id)
    if session is None:
        raise HTTPException(404, "Chat session not found")
    if not await user.can_see_session(session):
        raise HTTPException(403, "Not a participant of this chat session")
    return session


# ----------------------------------------
# Sessions
# ----------------------------------------
@router.post("/sessions")
async def create_session(
        payload: CreateSessionRequest,
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    session = await service.create_session(
        current_user.id,
        subject=payload.subject,
        priority=payload.priority.value
    )
    return {"session": session}


@router.get("/sessions")
async def list_sessions(
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    """Staff get every session, customers only their own."""
    if await current_user.is_privileged():
        sessions = await service.list_sessions(viewer_id=current_user.id)
    else:
        sessions = await service.list_sessions(viewer_id=current_user.id, user_id=current_user.id)
    return {"sessions": sessions}


@router.get("/sessions/{session_id}")
async def get_session(
        session_id: int,
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    await get_visible_session(session_id, current_user)
    return {"session": await service.get_session(session_id, viewer_id=current_user.id)}


@router.post("/sessions/{session_id}/assign")
async def assign_session(
        session_id: int,
        service: ChatService = Depends(),
        current_user: User = Depends(require_role(settings.PRIVILEGED_ROLES))
):
    """Staff only: take over the session."""
    await get_visible_session(session_id, current_user)
    session = await service.update_session(
        session_id,
        admin_id=current_user.id,
        status=SessionStatus.ACTIVE.value
    )
    return {"session": session}


@router.post("/sessions/{session_id}/close")
async def close_session(
        session_id: int,
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    await get_visible_session(session_id, current_user)
    session = await service.update_session(
        session_id,
        status=SessionStatus.CLOSED.value,
        closed_at=timezone.now()
    )
    await ws_manager.broadcast(session_id, {"type": "session", "session": session})
    return {"session": session}


@router.post("/sessions/{session_id}/reopen")
async def reopen_session(
        session_id: int,
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    current = await get_visible_session(session_id, current_user)
    status = SessionStatus.ACTIVE if current.admin_id else SessionStatus.WAITING
    session = await service.update_session(session_id, status=status.value, closed_at=None)
    await ws_manager.broadcast(session_id, {"type": "session", "session": session})
    return {"session": session}


# ----------------------------------------
# Messages
# ----------------------------------------
@router.get("/sessions/{session_id}/messages")
async def session_messages(
        session_id: int,
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    await get_visible_session(session_id, current_user)
    return {"messages": await service.get_messages(session_id)}


@router.post("/sessions/{session_id}/messages")
async def send_message(
        session_id: int,
        payload: SendMessageRequest,
        service: ChatService = Depends(),
        typing: TypingService = Depends(get_typing_service),
        current_user: User = Depends(get_current_user)
):
    session = await get_visible_session(session_id, current_user)

    msg = await service.send_message(
        session_id=session_id,
        sender_id=current_user.id,
        message=payload.message,
        message_type=payload.message_type.value,
        file_url=payload.file_url
    )

    # first reply by either party starts the conversation
    if session.status == SessionStatus.WAITING:
        await service.update_session(session_id, status=SessionStatus.ACTIVE.value)

    try:
        await typing.set_typing(session_id, current_user.id, is_typing=False)
    except Exception as e:
        chat_logger.error(f"Error clearing typing state in session {session_id}: {e}")

    await ws_manager.broadcast(session_id, {"type": "message", "message": msg})
    return {"message": msg}


@router.post("/sessions/{session_id}/read")
async def mark_read(
        session_id: int,
        service: ChatService = Depends(),
        current_user: User = Depends(get_current_user)
):
    await get_visible_session(session_id, current_user)
    updated = await service.mark_read(session_id, current_user.id)
    if updated:
        await ws_manager.broadcast(session_id, {"type": "read", "reader_id": current_user.id})
    return {"updated": updated}


# ----------------------------------------
# Typing indicator
# ----------------------------------------
@router.post("/sessions/{session_id}/typing")
async def set_typing(
        session_id: int,
        payload: TypingRequest,
        service: TypingService = Depends(get_typing_service),
        current_user: User = Depends(get_current_user)
):
    await get_visible_session(session_id, current_user)
    await service.set_typing(session_id, current_user.id, payload.is_typing)
    return {"is_typing": payload.is_typing}


@router.get("/sessions/{session_id}/typing")
async def get_typing(
        session_id: int,
        service: TypingService = Depends(get_typing_service),
        current_user: User = Depends(get_current_user)
):
    await get_visible_session(session_id, current_user)
    return {"typing": await service.get_typing(session_id, exclude_user_id=current_user.id)}


# ----------------------------------------
# Attachments
# ----------------------------------------
@router.post("/upload")
async def upload_file(
        file: UploadFile,
        service: UploadService = Depends(),
        current_user: User = Depends(get_current_user)
):
    url = await service.upload_attachment(file)
    return {"url": url, "file_name": file.filename}
