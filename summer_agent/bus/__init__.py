"""Message bus package."""

from summer_agent.bus.outbound_message_bus import InboundMessage, MessageBus, OutboundMessage

__all__ = ["InboundMessage", "MessageBus", "OutboundMessage"]
