import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from medvisit.services.notification_service import notification_bus

logger = logging.getLogger(__name__)
router = APIRouter(tags=["notifications"])


@router.websocket("/ws/notifications")
async def notifications(websocket: WebSocket) -> None:
    """Relay every bus event to the connected client as JSON."""
    await websocket.accept()
    logger.info("Notification client connected")
    async with notification_bus.subscribe() as queue:
        try:
            while True:
                message = await queue.get()
                await websocket.send_json(message)
        except WebSocketDisconnect:
            logger.info("Notification client disconnected")
