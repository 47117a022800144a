"""Length-prefixed framing of Janus commands and responses."""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from typing import Any, Union

from janusmsg.message_types import (
    JanusCommand,
    JanusResponse,
    JSONRPCError,
    JSONRPCErrorCode,
)

LENGTH_PREFIX_SIZE = 4
MAX_MESSAGE_SIZE = 10 * 1024 * 1024

_PREFIX = struct.Struct(">I")

Message = Union[JanusCommand, JanusResponse]


class _IncompleteFrame(JSONRPCError):
    """Raised when a buffer does not yet hold a whole frame."""

    def __init__(self, message: str) -> None:
        super().__init__(JSONRPCErrorCode.MESSAGE_FRAMING_ERROR, message)


def _framing_error(message: str) -> JSONRPCError:
    return JSONRPCError(JSONRPCErrorCode.MESSAGE_FRAMING_ERROR, message)


def _dumps(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _message_dict(message: Message) -> tuple[str, dict[str, Any]]:
    if isinstance(message, JanusCommand):
        return "command", message.to_dict()
    if isinstance(message, JanusResponse):
        return "response", message.to_dict()
    raise TypeError(f"cannot frame object of type {type(message).__name__}")


def _prefixed(body: bytes) -> bytes:
    if len(body) > MAX_MESSAGE_SIZE:
        raise _framing_error(f"Message size {len(body)} exceeds maximum {MAX_MESSAGE_SIZE}")
    return _PREFIX.pack(len(body)) + body


def _read_length(buffer: bytes) -> int:
    if len(buffer) < LENGTH_PREFIX_SIZE:
        raise _IncompleteFrame(
            f"Buffer too small for length prefix: {len(buffer)} < {LENGTH_PREFIX_SIZE}"
        )
    (length,) = _PREFIX.unpack_from(buffer)
    return length


def _split_frame(buffer: bytes, length: int) -> tuple[bytes, bytes]:
    total_required = LENGTH_PREFIX_SIZE + length
    if len(buffer) < total_required:
        raise _IncompleteFrame(
            f"Buffer too small for complete message: {len(buffer)} < {total_required}"
        )
    return buffer[LENGTH_PREFIX_SIZE:total_required], buffer[total_required:]


@dataclass(frozen=True)
class SocketMessageEnvelope:
    """Envelope naming the message type and carrying its JSON payload as text."""

    message_type: str
    payload: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.message_type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: Any) -> SocketMessageEnvelope:
        if not isinstance(data, dict):
            raise ValueError("envelope must be an object")
        message_type = data.get("type")
        payload = data.get("payload")
        if not isinstance(message_type, str):
            raise ValueError("field 'type' must be a string")
        if not isinstance(payload, str):
            raise ValueError("field 'payload' must be a string")
        return cls(message_type, payload)


class MessageFraming:
    """Encodes and decodes messages behind a 4-byte big-endian length prefix."""

    def encode_message(self, message: Message) -> bytes:
        """Frame a message inside a typed JSON envelope."""
        message_type, data = _message_dict(message)
        envelope = SocketMessageEnvelope(message_type, _dumps(data).decode("utf-8"))
        return _prefixed(_dumps(envelope.to_dict()))

    def decode_message(self, buffer: bytes) -> tuple[Message, bytes]:
        """Decode one enveloped frame; return the message and the unread bytes."""
        buffer = bytes(buffer)
        length = _read_length(buffer)
        if length > MAX_MESSAGE_SIZE:
            raise _framing_error(f"Message length {length} exceeds maximum {MAX_MESSAGE_SIZE}")
        if length == 0:
            raise _framing_error("Message length cannot be zero")
        body, remaining = _split_frame(buffer, length)

        try:
            envelope = SocketMessageEnvelope.from_dict(json.loads(body))
        except ValueError as exc:
            raise _framing_error(f"Failed to parse message envelope JSON: {exc}") from exc

        if not envelope.message_type or not envelope.payload:
            raise _framing_error("Message envelope missing required fields (type, payload)")
        if envelope.message_type not in ("command", "response"):
            raise _framing_error(f"Invalid message type: {envelope.message_type}")

        message: Message
        if envelope.message_type == "command":
            try:
                message = JanusCommand.from_dict(json.loads(envelope.payload))
            except ValueError as exc:
                raise _framing_error(f"Failed to parse command payload JSON: {exc}") from exc
            self._validate_command(message)
        else:
            try:
                message = JanusResponse.from_dict(json.loads(envelope.payload))
            except ValueError as exc:
                raise _framing_error(f"Failed to parse response payload JSON: {exc}") from exc
            self._validate_response(message)
        return message, remaining

    def extract_messages(self, buffer: bytes) -> tuple[list[Message], bytes]:
        """Decode every complete frame; return them with any trailing partial frame."""
        messages: list[Message] = []
        current = bytes(buffer)
        while current:
            try:
                message, current = self.decode_message(current)
            except _IncompleteFrame:
                break
            messages.append(message)
        return messages, current

    def calculate_framed_size(self, message: Message) -> int:
        return len(self.encode_message(message))

    def encode_direct_message(self, message: Message) -> bytes:
        """Frame a message's JSON directly, without an envelope."""
        _, data = _message_dict(message)
        return _prefixed(_dumps(data))

    def decode_direct_message(self, buffer: bytes) -> tuple[Message, bytes]:
        """Decode one envelope-less frame, telling commands and responses apart by their keys."""
        buffer = bytes(buffer)
        length = _read_length(buffer)
        body, remaining = _split_frame(buffer, length)

        try:
            raw = json.loads(body)
        except ValueError as exc:
            raise _framing_error(f"Failed to parse message JSON: {exc}") from exc

        message: Message
        if isinstance(raw, dict) and "command" in raw:
            try:
                message = JanusCommand.from_dict(raw)
            except ValueError as exc:
                raise _framing_error(f"Failed to parse command: {exc}") from exc
        elif isinstance(raw, dict) and "commandId" in raw:
            try:
                message = JanusResponse.from_dict(raw)
            except ValueError as exc:
                raise _framing_error(f"Failed to parse response: {exc}") from exc
        else:
            raise _framing_error("Cannot determine message type")
        return message, remaining

    @staticmethod
    def _validate_command(command: JanusCommand) -> None:
        for name, value in (
            ("id", command.id),
            ("channelId", command.channel_id),
            ("command", command.command),
        ):
            if not value:
                raise _framing_error(f"Command missing required string field: {name}")

    @staticmethod
    def _validate_response(response: JanusResponse) -> None:
        if not response.command_id:
            raise _framing_error("Response missing required field: commandId")
        if not response.channel_id:
            raise _framing_error("Response missing required field: channelId")