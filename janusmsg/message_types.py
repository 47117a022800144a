"""Command, response and envelope types exchanged over Janus datagram sockets."""

from __future__ import annotations

import json
import math
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import timedelta
from enum import Enum, IntEnum
from typing import Any


def _now() -> float:
    return time.time()


def _format_seconds(value: float) -> str:
    """Render a float the way integral values print without a fractional part."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _dumps(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


class JSONRPCErrorCode(IntEnum):
    """JSON-RPC 2.0 error codes, including implementation-defined server codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    VALIDATION_FAILED = -32005
    HANDLER_TIMEOUT = -32006
    MESSAGE_FRAMING_ERROR = -32011

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_DEFAULT_MESSAGES = {
    JSONRPCErrorCode.PARSE_ERROR: "Parse error",
    JSONRPCErrorCode.INVALID_REQUEST: "Invalid Request",
    JSONRPCErrorCode.METHOD_NOT_FOUND: "Method not found",
    JSONRPCErrorCode.INVALID_PARAMS: "Invalid params",
    JSONRPCErrorCode.INTERNAL_ERROR: "Internal error",
    JSONRPCErrorCode.VALIDATION_FAILED: "Validation failed",
    JSONRPCErrorCode.HANDLER_TIMEOUT: "Handler timeout",
    JSONRPCErrorCode.MESSAGE_FRAMING_ERROR: "Message framing error",
}


class JSONRPCError(Exception):
    """A JSON-RPC 2.0 error, usable both as an exception and as response data."""

    def __init__(
        self,
        code: JSONRPCErrorCode | int,
        message: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.code = int(code)
        if message is None:
            try:
                message = JSONRPCErrorCode(self.code).default_message
            except ValueError:
                message = "Unknown error"
        self.message = message
        self.data = data
        super().__init__(message)

    @property
    def error_code(self) -> JSONRPCErrorCode | None:
        try:
            return JSONRPCErrorCode(self.code)
        except ValueError:
            return None

    def __str__(self) -> str:
        return f"JSON-RPC error {self.code}: {self.message}"

    def __repr__(self) -> str:
        return f"JSONRPCError(code={self.code!r}, message={self.message!r}, data={self.data!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JSONRPCError):
            return NotImplemented
        return (self.code, self.message, self.data) == (other.code, other.message, other.data)

    __hash__ = Exception.__hash__

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, data: Any) -> JSONRPCError:
        if not isinstance(data, dict):
            raise ValueError("error must be an object")
        code = data.get("code")
        message = data.get("message")
        if not isinstance(code, int) or isinstance(code, bool):
            raise ValueError("error field 'code' must be an integer")
        if not isinstance(message, str):
            raise ValueError("error field 'message' must be a string")
        extra = data.get("data")
        if extra is not None and not isinstance(extra, dict):
            raise ValueError("error field 'data' must be an object")
        return cls(code, message, extra)


def _require_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field '{key}' must be a string")
    return value


def _require_number(data: dict[str, Any], key: str) -> float:
    if key not in data:
        raise ValueError(f"missing field '{key}'")
    value = data[key]
    if not _is_number(value):
        raise ValueError(f"field '{key}' must be a number")
    return float(value)


@dataclass
class JanusCommand:
    """A command sent to a channel, optionally naming a socket for the reply."""

    id: str
    channel_id: str
    command: str
    reply_to: str | None = None
    args: dict[str, Any] | None = None
    timeout: float | None = None
    timestamp: float = field(default_factory=_now)

    @classmethod
    def create(
        cls,
        channel_id: str,
        command: str,
        args: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> JanusCommand:
        """Create a command with a fresh UUID."""
        return cls(str(uuid.uuid4()), channel_id, command, None, args, timeout)

    @classmethod
    def with_id(
        cls,
        id: str,
        channel_id: str,
        command: str,
        args: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> JanusCommand:
        return cls(id, channel_id, command, None, args, timeout)

    def with_reply_to(self, reply_to: str) -> JanusCommand:
        """Return a copy that routes its response to ``reply_to``."""
        return replace(self, reply_to=reply_to)

    def timeout_duration(self) -> timedelta | None:
        return None if self.timeout is None else timedelta(seconds=self.timeout)

    def has_timeout(self) -> bool:
        return self.timeout is not None

    def validate(self) -> None:
        """Raise JSONRPCError if the command is structurally invalid."""
        if not self.id:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Command ID cannot be empty")
        if not self.channel_id:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Channel ID cannot be empty")
        if not self.command:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Command name cannot be empty")
        if self.timeout is not None and self.timeout <= 0.0:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Timeout must be positive")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "channelId": self.channel_id,
            "command": self.command,
        }
        if self.reply_to is not None:
            data["reply_to"] = self.reply_to
        data["args"] = self.args
        data["timeout"] = self.timeout
        data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Any) -> JanusCommand:
        if not isinstance(data, dict):
            raise ValueError("command must be an object")
        reply_to = data.get("reply_to")
        if reply_to is not None and not isinstance(reply_to, str):
            raise ValueError("field 'reply_to' must be a string")
        args = data.get("args")
        if args is not None and not isinstance(args, dict):
            raise ValueError("field 'args' must be an object")
        timeout = data.get("timeout")
        if timeout is not None and not _is_number(timeout):
            raise ValueError("field 'timeout' must be a number")
        return cls(
            id=_require_str(data, "id"),
            channel_id=_require_str(data, "channelId"),
            command=_require_str(data, "command"),
            reply_to=reply_to,
            args=args,
            timeout=None if timeout is None else float(timeout),
            timestamp=_require_number(data, "timestamp"),
        )


@dataclass
class JanusResponse:
    """A response correlated to a command by its ID."""

    command_id: str
    channel_id: str
    success: bool
    result: Any = None
    error: JSONRPCError | None = None
    timestamp: float = field(default_factory=_now)

    @classmethod
    def make_success(cls, command_id: str, channel_id: str, result: Any = None) -> JanusResponse:
        return cls(command_id, channel_id, True, result, None)

    @classmethod
    def make_error(cls, command_id: str, channel_id: str, error: JSONRPCError) -> JanusResponse:
        return cls(command_id, channel_id, False, None, error)

    @classmethod
    def internal_error(cls, command_id: str, channel_id: str, message: str) -> JanusResponse:
        return cls.make_error(
            command_id, channel_id, JSONRPCError(JSONRPCErrorCode.INTERNAL_ERROR, message)
        )

    @classmethod
    def timeout_error(
        cls, command_id: str, channel_id: str, timeout_seconds: float
    ) -> JanusResponse:
        context = {"commandId": command_id, "timeoutSeconds": float(timeout_seconds)}
        error = JSONRPCError(
            JSONRPCErrorCode.HANDLER_TIMEOUT,
            f"Handler timed out after {_format_seconds(timeout_seconds)} seconds",
            context,
        )
        return cls.make_error(command_id, channel_id, error)

    def validate(self) -> None:
        """Raise JSONRPCError if the response is structurally inconsistent."""
        if not self.command_id:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Command ID cannot be empty")
        if not self.channel_id:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Channel ID cannot be empty")
        if self.success and self.error is not None:
            raise JSONRPCError(
                JSONRPCErrorCode.VALIDATION_FAILED, "Successful response cannot have error"
            )
        if not self.success and self.error is None:
            raise JSONRPCError(JSONRPCErrorCode.VALIDATION_FAILED, "Failed response must have error")

    def to_dict(self) -> dict[str, Any]:
        return {
            "commandId": self.command_id,
            "channelId": self.channel_id,
            "success": self.success,
            "result": self.result,
            "error": None if self.error is None else self.error.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> JanusResponse:
        if not isinstance(data, dict):
            raise ValueError("response must be an object")
        if "success" not in data:
            raise ValueError("missing field 'success'")
        success = data["success"]
        if not isinstance(success, bool):
            raise ValueError("field 'success' must be a boolean")
        error_data = data.get("error")
        return cls(
            command_id=_require_str(data, "commandId"),
            channel_id=_require_str(data, "channelId"),
            success=success,
            result=data.get("result"),
            error=None if error_data is None else JSONRPCError.from_dict(error_data),
            timestamp=_require_number(data, "timestamp"),
        )


class MessageType(Enum):
    COMMAND = "Command"
    RESPONSE = "Response"


@dataclass
class SocketMessage:
    """A typed envelope holding a JSON-encoded command or response."""

    message_type: MessageType
    payload: bytes

    @classmethod
    def command(cls, command: JanusCommand) -> SocketMessage:
        return cls(MessageType.COMMAND, _dumps(command.to_dict()))

    @classmethod
    def response(cls, response: JanusResponse) -> SocketMessage:
        return cls(MessageType.RESPONSE, _dumps(response.to_dict()))

    def decode_command(self) -> JanusCommand:
        """Decode the payload as a command; raise ValueError if it is not one."""
        if self.message_type is not MessageType.COMMAND:
            raise ValueError("Message is not a command")
        return JanusCommand.from_dict(json.loads(self.payload))

    def decode_response(self) -> JanusResponse:
        """Decode the payload as a response; raise ValueError if it is not one."""
        if self.message_type is not MessageType.RESPONSE:
            raise ValueError("Message is not a response")
        return JanusResponse.from_dict(json.loads(self.payload))

    def payload_size(self) -> int:
        return len(self.payload)

    def validate(self) -> None:
        """Raise JSONRPCError unless the payload decodes to a valid message."""
        if not self.payload:
            raise JSONRPCError(
                JSONRPCErrorCode.VALIDATION_FAILED, "Message payload cannot be empty"
            )
        if self.message_type is MessageType.COMMAND:
            try:
                decoded: JanusCommand | JanusResponse = self.decode_command()
            except (ValueError, UnicodeDecodeError) as exc:
                raise JSONRPCError(
                    JSONRPCErrorCode.VALIDATION_FAILED, f"Invalid command payload: {exc}"
                ) from exc
        else:
            try:
                decoded = self.decode_response()
            except (ValueError, UnicodeDecodeError) as exc:
                raise JSONRPCError(
                    JSONRPCErrorCode.VALIDATION_FAILED, f"Invalid response payload: {exc}"
                ) from exc
        decoded.validate()

    @classmethod
    def text_command(cls, channel_id: str, command: str, text: str) -> SocketMessage:
        return cls.command(JanusCommand.create(channel_id, command, {"text": text}))

    @classmethod
    def simple_success(cls, command_id: str, channel_id: str, message: str) -> SocketMessage:
        return cls.response(
            JanusResponse.make_success(command_id, channel_id, {"message": message})
        )

    @classmethod
    def simple_error(cls, command_id: str, channel_id: str, error_message: str) -> SocketMessage:
        return cls.response(JanusResponse.internal_error(command_id, channel_id, error_message))