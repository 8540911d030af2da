"""
Helpers for WebSocket tests.
"""


def recv_until(ws, msg_type: str, max_messages: int = 20) -> dict:
    """Receive WS messages until one of the expected type arrives."""
    for _ in range(max_messages):
        data = ws.receive_json()
        if data.get("type") == msg_type:
            return data
    raise AssertionError(f"Never received {msg_type} after {max_messages} messages")
