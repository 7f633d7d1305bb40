"""Inter-module messaging. Scheduler and cost control talk through this bus."""

from autobot.messaging.bus import Message, MessageBus, MessageHandler, MessageType

__all__ = ["Message", "MessageBus", "MessageHandler", "MessageType"]
