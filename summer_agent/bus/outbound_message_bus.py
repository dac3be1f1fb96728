"""In-process message bus between chat channels and the agent.

Why: Tools such as ``markdown_file`` deliver artifacts to the user's chat
while the loop keeps running.  They only publish to the bus; a channel
adapter (not part of this package) consumes outbound messages and performs
the actual delivery, so publishing never blocks the loop.
"""

import logging
import queue
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class InboundMessage:
    channel: str
    sender_id: str
    chat_id: str
    content: str
    media: List[str] = field(default_factory=list)
    session_key: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class OutboundMessage:
    channel: str
    chat_id: str
    content: str
    file_path: str = ""
    file_name: str = ""


class MessageBus:
    """Two unbounded FIFO queues, safe to share between threads."""

    def __init__(self) -> None:
        self._inbound: "queue.Queue[InboundMessage]" = queue.Queue()
        self._outbound: "queue.Queue[OutboundMessage]" = queue.Queue()

    def publish_inbound(self, message: InboundMessage) -> None:
        self._inbound.put(message)

    def consume_inbound(self, timeout: Optional[float] = None) -> Optional[InboundMessage]:
        """Return the next inbound message, or None after ``timeout`` seconds."""
        try:
            return self._inbound.get(timeout=timeout)
        except queue.Empty:
            return None

    def publish_outbound(self, message: OutboundMessage) -> None:
        logger.info(
            "Outbound message queued: channel=%s chat=%s file=%s",
            message.channel, message.chat_id, message.file_name or "-",
        )
        self._outbound.put(message)

    def consume_outbound(self, timeout: Optional[float] = None) -> Optional[OutboundMessage]:
        """Return the next outbound message, or None after ``timeout`` seconds."""
        try:
            return self._outbound.get(timeout=timeout)
        except queue.Empty:
            return None
