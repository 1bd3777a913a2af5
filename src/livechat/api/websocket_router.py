from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, status
import json
from starlette.websockets import WebSocketState
from src.livechat.api.deps import get_websocket_service_container
from src.livechat.chat.exceptions import AuthenticationError
from src.livechat.chat.service_container import ServiceContainer
from src.livechat.models.events import ServerEvent
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/chat")
async def websocket_endpoint(
    websocket: WebSocket,
    services: ServiceContainer = Depends(get_websocket_service_container)
):
    """Realtime channel for customers, agents and admins.

    Workflow:
        1. Verifies the ``token`` query parameter; bad tokens close the
           handshake with 1008 (policy violation)
        2. Registers presence and joins the personal and role rooms
        3. Dispatches inbound JSON frames to the chat coordinator until the
           client disconnects
        4. Leaves every room, announcing agents going offline
    """
    if services is None:
        return
    try:
        user = services.jwt_validator.verify(
            websocket.query_params.get("token", "")
        )
    except AuthenticationError as e:
        logger.warning(f"Rejected websocket connection: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    coordinator = services.coordinator
    await websocket.accept()
    try:
        await coordinator.on_connect(websocket, user)
        while True:
            data = await websocket.receive_text()
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                await services.connections.emit(
                    websocket, ServerEvent.ERROR, {"message": "Invalid JSON"}
                )
                continue
            await coordinator.handle_event(websocket, user, payload)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {user.username}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        if websocket.client_state != WebSocketState.DISCONNECTED:
            try:
                await websocket.close(code=1011)  # 1011 = Internal Error
            except Exception as close_error:
                logger.error(f"Error closing WebSocket: {close_error}")
    finally:
        await coordinator.on_disconnect(websocket, user)
