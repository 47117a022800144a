"""Command/response message types, length-prefixed framing and asyncio response tracking."""

__version__ = "2.0.0"
__all__ = ["message_types", "message_framing", "response_tracker"]