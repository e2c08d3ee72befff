import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from votely.config import ADMIN_ROOM
from votely.deps import user_from_token
from votely.errors import VotelyError
from votely.realtime.registry import Observer, election_room
from votely.utils import parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def resolve_room(event: str, data) -> Optional[str]:
    if event in ("join-election", "leave-election"):
        return election_room(parse_object_id(data, "election"))
    if event in ("join-admin-room", "leave-admin-room"):
        return ADMIN_ROOM
    return None


@router.websocket("/ws")
async def realtime(websocket: WebSocket, token: Optional[str] = None):
    """
    Realtime vote feed.

    Frames in both directions are JSON objects {"event": ..., "data": ...}.
    Clients send join-election/leave-election with an election id, or
    join-admin-room/leave-admin-room; the server answers with joined/left or
    error, then pushes vote-cast, new-vote and vote-deleted events.
    """
    registry = websocket.app.state.registry
    await websocket.accept()

    user = None
    if token:
        try:
            user = await user_from_token(websocket.app.state.db, token)
        except VotelyError as e:
            await websocket.send_json({"event": "error", "data": {"message": e.message}})
            await websocket.close(code=1008)
            return

    observer = Observer(websocket, user)
    logger.info(f"{observer!r} connected")
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            try:
                # Binary frames carry no "text" and are treated as malformed
                message = json.loads(frame.get("text") or "")
            except ValueError:
                await observer.send("error", {"message": "Malformed message"})
                continue
            event = message.get("event") if isinstance(message, dict) else None
            try:
                room = resolve_room(event, message.get("data")) if event else None
                if room is None:
                    await observer.send("error", {"message": f"Unknown event: {event}"})
                    continue
                if event.startswith("join"):
                    registry.join(observer, room)
                    await observer.send("joined", {"room": room})
                else:
                    registry.leave(observer, room)
                    await observer.send("left", {"room": room})
            except VotelyError as e:
                await observer.send("error", {"message": e.message})
    except WebSocketDisconnect:
        logger.info(f"{observer!r} disconnected")
    finally:
        rooms = sorted(registry.rooms_of(observer))
        registry.disconnect(observer)
        if rooms:
            logger.info(f"{observer!r} removed from {rooms}")
