"""
Infrastructure Layer

aiohttp implementations of the status fetcher and the push channel.
"""

from .http_status_repository import HttpJobStatusRepository
from .websocket_channel import WebSocketChannelHandle, WebSocketPushChannel

__all__ = [
    "HttpJobStatusRepository",
    "WebSocketChannelHandle",
    "WebSocketPushChannel",
]
