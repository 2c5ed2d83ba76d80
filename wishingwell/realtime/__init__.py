import logging
import os
from flask_socketio import SocketIO, join_room, leave_room, emit
from flask import request

_raw = os.getenv("SOCKETIO_CORS_ORIGINS", "*").strip()
CORS_ORIGINS = "*" if _raw == "*" else [o.strip() for o in _raw.split(",") if o.strip()]

log = logging.getLogger(__name__)

socketio = SocketIO(
    cors_allowed_origins=CORS_ORIGINS,
    async_mode=os.getenv("SOCKETIO_ASYNC_MODE", "threading"),
)


def well_room(well_id: str) -> str:
    return f"well:{well_id}"


def broadcast_donation(receipt) -> None:
    """Push a recorded donation to everyone watching the well."""
    socketio.emit(
        "donation",
        {
            "well_id": receipt.campaign_id,
            "amount": receipt.amount,
            "current_amount": receipt.new_campaign_total,
            "has_message": receipt.message_id is not None,
        },
        to=well_room(receipt.campaign_id),
    )


def init_socketio(app):
    socketio.init_app(app)

    @socketio.on("connect")
    def handle_connect():
        log.debug("[socket] connect origin=%s", request.headers.get("Origin"))
        emit("connected", {"ok": True})

    @socketio.on("join_well")
    def on_join(data):
        wid = (data or {}).get("well_id")
        if not wid:
            emit("error", {"error": "well_id required"})
            return
        room = well_room(wid)
        join_room(room)
        emit("joined", {"room": room})

    @socketio.on("leave_well")
    def on_leave(data):
        wid = (data or {}).get("well_id")
        if not wid:
            return
        room = well_room(wid)
        leave_room(room)
        emit("left", {"room": room})
