from fastapi import APIRouter, WebSocket, Depends, Query, HTTPException
from starlette import status
from starlette.websockets import WebSocketDisconnect

from api.deps import get_user_from_token, get_typing_service
from core.logger import ws_logger
from models.chat_session import ChatSession, SessionStatus
from services.chat_service import ChatService
from services.typing_service import TypingService
from services.websocket_manager import WebSocketManager

router = APIRouter(prefix="/api/v1/ws", tags=["Chat"])

ws_manager = WebSocketManager()


@router.websocket("/chat/{session_id}")
async def chat_ws(
        websocket: WebSocket,
        session_id: int,
        token: str = Query(...),
        service: ChatService = Depends(),
        typing: TypingService = Depends(get_typing_service),
):
    """
    Push channel for one chat session. Clients may keep polling; this only
    delivers the same events sooner.
    """
    await websocket.accept()

    try:
        current_user = await get_user_from_token(token)
    except HTTPException:
        ws_logger.logger.error(f"Rejected socket for session {session_id}: bad token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    session = await ChatSession.get_or_none(id=session_id)
    if session is None or not await current_user.can_see_session(session):
        ws_logger.logger.error(f"User {current_user.id} may not join session {session_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    ws_logger.log_connect(current_user.id, session_id)
    await ws_manager.add(session_id, websocket)

    try:
        while True:
            data = await websocket.receive_json()
            action = data.get("action")

            ws_logger.log_message(action, {
                "session_id": session_id,
                "user_id": current_user.id,
                "data": data
            })

            if action == "send_message":
                try:
                    msg = await service.send_message(
                        session_id=session_id,
                        sender_id=current_user.id,
                        message=data.get("message"),
                        message_type=data.get("type", "text"),
                        file_url=data.get("file_url"),
                    )

                    await session.refresh_from_db(fields=["status"])
                    if session.status == SessionStatus.WAITING:
                        await service.update_session(session_id, status=SessionStatus.ACTIVE.value)

                    await ws_manager.broadcast(session_id, {
                        "type": "message",
                        "message": msg
                    })

                except Exception as e:
                    ws_logger.log_error("send_message", e)
                    await websocket.send_json({
                        "type": "error",
                        "message": f"Failed to send message: {str(e)}"
                    })

            elif action == "typing":
                is_typing = bool(data.get("is_typing", False))
                try:
                    await typing.set_typing(session_id, current_user.id, is_typing)
                except Exception as e:
                    ws_logger.log_error("typing", e)

                await ws_manager.broadcast(session_id, {
                    "type": "typing",
                    "user_id": current_user.id,
                    "is_typing": is_typing
                })

            elif action == "read":
                try:
                    updated = await service.mark_read(session_id, current_user.id)
                    await ws_manager.broadcast(session_id, {
                        "type": "read",
                        "reader_id": current_user.id,
                        "updated": updated
                    })
                except Exception as e:
                    ws_logger.log_error("mark_read", e)

    except WebSocketDisconnect:
        ws_logger.log_disconnect(current_user.id, session_id)
    except Exception as e:
        ws_logger.log_error("websocket_loop", e)
    finally:
        await ws_manager.remove(session_id, websocket)
