from fastapi import BackgroundTasks, WebSocket, WebSocketDisconnect
from typing import Any, Dict, List, Set
import json
import logging
from datetime import datetime

logger = logging.getLogger(__name__)

class BookingEventHub:
    """Route-scoped WebSocket fan-out for booking lifecycle events"""

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self.route_subscriptions: Dict[int, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket):
        """Accept new WebSocket connection"""
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        """Remove WebSocket connection"""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

        for route_subs in self.route_subscriptions.values():
            route_subs.discard(websocket)

    async def subscribe_to_route(self, websocket: WebSocket, route_id: int):
        """Subscribe WebSocket to booking events on a route"""
        self.route_subscriptions.setdefault(route_id, set()).add(websocket)

        await self.send_personal_message(websocket, {
            "type": "subscription_confirmed",
            "route_id": route_id,
            "timestamp": datetime.now().isoformat()
        })

    async def send_personal_message(self, websocket: WebSocket, message: dict):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message, default=str))
        except Exception:
            self.disconnect(websocket)

    async def publish(self, route_id: int, event: str, payload: Dict[str, Any]):
        """Broadcast an event to the route's subscribers; delivery failures only drop the socket"""
        subscribers = self.route_subscriptions.get(route_id)
        if not subscribers:
            return

        message_text = json.dumps({
            "type": event,
            "route_id": route_id,
            "booking": payload,
            "timestamp": datetime.now().isoformat()
        }, default=str)
        disconnected = []

        for connection in subscribers.copy():
            try:
                await connection.send_text(message_text)
            except Exception as e:
                logger.warning("Dropping subscriber on route %s: %s", route_id, e)
                disconnected.append(connection)

        for connection in disconnected:
            self.disconnect(connection)

class BackgroundNotifier:
    """
    Queues hub broadcasts as response background tasks so lifecycle calls
    never wait on, or fail because of, event delivery.
    """

    def __init__(self, hub: BookingEventHub, background_tasks: BackgroundTasks):
        self.hub = hub
        self.background_tasks = background_tasks

    def notify(self, route_id: int, event: str, payload: Dict[str, Any]):
        self.background_tasks.add_task(self.hub.publish, route_id, event, payload)

# Global hub instance shared by the booking router
event_hub = BookingEventHub()

async def websocket_endpoint(websocket: WebSocket, hub: BookingEventHub = event_hub):
    """WebSocket endpoint for route-scoped booking updates"""
    await hub.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await hub.send_personal_message(websocket, {"type": "error", "message": "Invalid JSON"})
                continue

            if not isinstance(message, dict):
                await hub.send_personal_message(websocket, {"type": "error", "message": "Message must be a JSON object"})
                continue

            if message.get("type") == "subscribe_route":
                try:
                    route_id = int(message.get("route_id"))
                except (TypeError, ValueError):
                    await hub.send_personal_message(websocket, {"type": "error", "message": "route_id is required"})
                    continue
                await hub.subscribe_to_route(websocket, route_id)

            elif message.get("type") == "ping":
                await hub.send_personal_message(websocket, {
                    "type": "pong",
                    "timestamp": datetime.now().isoformat()
                })

    except WebSocketDisconnect:
        logger.debug("Booking events client disconnected")
    finally:
        hub.disconnect(websocket)
