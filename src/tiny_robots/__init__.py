"""
tiny-robots — chat bots for Zulip and Rocket.Chat.

Long-polling event queue client, message sender, a Rocket.Chat websocket
client, bang commands and a CI pipeline webhook.
"""

__version__ = "0.1.0"

from tiny_robots.client import AsyncChatClient, ChatClient
from tiny_robots.config import Config, load_config
from tiny_robots.decoder import decode_event
from tiny_robots.errors import (
    APIError,
    ConfigError,
    DecodeError,
    TinyRobotsError,
    TransportError,
    ValidationError,
)
from tiny_robots.messages import MessagesAPI
from tiny_robots.models.events import Event, EventType, Heartbeat, Message, MessageType, OutboundMessage
from tiny_robots.models.queue import QueueSession
from tiny_robots.models.rocket import RoomMessage
from tiny_robots.poller import DispatchMode, EventPoller
from tiny_robots.queues import QueueAPI, is_bad_queue
from tiny_robots.rocket import AsyncRocketClient

__all__ = [
    "AsyncChatClient",
    "ChatClient",
    "AsyncRocketClient",
    "Config",
    "load_config",
    "decode_event",
    "TinyRobotsError",
    "TransportError",
    "APIError",
    "DecodeError",
    "ValidationError",
    "ConfigError",
    "MessagesAPI",
    "Event",
    "EventType",
    "Heartbeat",
    "Message",
    "MessageType",
    "OutboundMessage",
    "QueueSession",
    "RoomMessage",
    "QueueAPI",
    "is_bad_queue",
    "DispatchMode",
    "EventPoller",
]
