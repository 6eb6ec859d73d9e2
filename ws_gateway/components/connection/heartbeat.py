"""
Heartbeat handling for WebSocket Gateway.

Dashboards send "ping" (plain or JSON) every 30 seconds; the gateway
answers with a JSON pong. Dead clients are detected by the endpoint's
receive timeout, not here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.config.logging import get_logger
from ws_gateway.components.core.constants import MSG_PING_JSON, MSG_PING_PLAIN, MSG_PONG_JSON

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = get_logger(__name__)


def is_heartbeat(data: str) -> bool:
    return data == MSG_PING_PLAIN or data == MSG_PING_JSON


async def handle_heartbeat(ws: "WebSocket", data: str) -> bool:
    """
    Respond to ping messages with pong.

    Args:
        ws: The WebSocket connection.
        data: The received message data.

    Returns:
        True if message was a heartbeat and was handled, False otherwise.
    """
    if not is_heartbeat(data):
        return False

    try:
        await ws.send_text(MSG_PONG_JSON)
    except (ConnectionError, RuntimeError, OSError):
        # Connection may have closed - caller will handle cleanup
        pass
    except Exception as e:
        logger.warning(
            "Unexpected error sending heartbeat response",
            error=type(e).__name__,
            message=str(e),
        )
    return True
