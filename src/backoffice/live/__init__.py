"""Push channel and live operator toasts."""

from backoffice.live.channel import MemoryPushChannel, PushChannel, WebSocketPushChannel
from backoffice.live.listener import LiveChannelListener
from backoffice.live.models import OperatorSession, PushEvent
from backoffice.live.toasts import Toast, ToastBoard

__all__ = [
    "LiveChannelListener",
    "MemoryPushChannel",
    "OperatorSession",
    "PushChannel",
    "PushEvent",
    "Toast",
    "ToastBoard",
    "WebSocketPushChannel",
]
