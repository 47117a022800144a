# janusmsg

Message types, length-prefixed framing and response correlation for JSON
command/response traffic, such as requests sent over datagram sockets.

The package has no runtime dependencies and needs Python 3.10 or newer.

## Modules

- `janusmsg.message_types`
  - `JanusCommand`: a command with an `id`, `channel_id`, `command` name, and
    optional `reply_to`, `args` and `timeout` (seconds). It also has a
    `timestamp`.
  - `JanusResponse`: a response that is matched to its command by
    `command_id`. It holds `success`, `result` and `error`.
  - `JSONRPCError` and `JSONRPCErrorCode`: a JSON-RPC 2.0 style error. It is
    an exception, and it is also the `error` field of a response.
  - `SocketMessage` and `MessageType`: a typed envelope that holds the
    JSON-encoded bytes of a command or a response.
- `janusmsg.message_framing`
  - `MessageFraming`: writes messages behind a 4-byte big-endian length
    prefix. The body is either a `SocketMessageEnvelope` (`{"type", "payload"}`)
    or the plain message JSON. It can also pull whole messages out of a stream
    buffer.
- `janusmsg.response_tracker`
  - `ResponseTracker`, `TrackerConfig`: match incoming responses to pending
    commands on asyncio. They handle per-command timeouts, cancellation,
    periodic cleanup and statistics (`CommandStatistics`, `CommandInfo`).
    Failures raise `ResponseTrackerError`.

## Building and checking messages

```python
from janusmsg.message_types import JanusCommand, JanusResponse, SocketMessage

cmd = JanusCommand.create("orders", "lookup", {"order": "A-1"}, 30.0)
cmd = cmd.with_reply_to("/tmp/reply.sock")   # returns a copy
cmd.validate()                               # raises JSONRPCError if invalid

resp = JanusResponse.make_success(cmd.id, cmd.channel_id, {"status": "ok"})
resp.validate()

msg = SocketMessage.response(resp)
assert msg.decode_response().command_id == cmd.id
```

`to_dict()` and `from_dict()` convert commands and responses to and from their
wire form. The wire keys are `channelId` and `commandId`. `from_dict` raises
`ValueError` when a field is missing or has the wrong type.

These constructors build failures:

- `JanusResponse.make_error` takes a `JSONRPCError`.
- `JanusResponse.internal_error` uses the `INTERNAL_ERROR` code.
- `JanusResponse.timeout_error` uses the `HANDLER_TIMEOUT` code and carries
  `commandId` and `timeoutSeconds` in the error data.

`SocketMessage.decode_command` and `decode_response` raise `ValueError` if the
message has the other type. `SocketMessage.validate` raises `JSONRPCError` if
the payload is empty, cannot be decoded, or decodes to an invalid message.

## Framing

```python
from janusmsg.message_framing import MessageFraming

framing = MessageFraming()
data = framing.encode_message(cmd) + framing.encode_message(resp)

message, rest = framing.decode_message(data)        # first message, unread bytes
messages, leftover = framing.extract_messages(data)  # all whole messages
```

`extract_messages` stops at a trailing partial frame and returns those bytes
unread, so more data can be appended before the next call.

`encode_direct_message` and `decode_direct_message` work without the envelope.
The decoder tells commands and responses apart by the `command` and
`commandId` keys.

Messages may be at most 10 MiB. `decode_message` also rejects a zero length.
Framing problems raise `JSONRPCError` with the code
`JSONRPCErrorCode.MESSAGE_FRAMING_ERROR`.

## Tracking responses

```python
import asyncio
from janusmsg.message_types import JanusResponse
from janusmsg.response_tracker import ResponseTracker, TrackerConfig

async def main():
    async with ResponseTracker(TrackerConfig(default_timeout=10.0)) as tracker:
        future = tracker.track_command("cmd-1", 5.0)
        tracker.handle_response(JanusResponse.make_success("cmd-1", "orders", {"ok": True}))
        response = await future
        print(response.result)

asyncio.run(main())
```

`track_command` returns an `asyncio.Future`. It must be called while an event
loop is running.

- Timeouts are given in seconds or as a `timedelta`. A timeout of zero or
  `None` uses the configured default.
- Tracking more than `max_pending_commands` commands raises
  `ResponseTrackerError`, as does tracking an ID twice.
- A command's future fails with `ResponseTrackerError` if it times out or is
  cancelled. Cancellation happens through `cancel_command`,
  `cancel_all_commands` or `shutdown`.
- `start()` runs `cleanup()` every `cleanup_interval` seconds. Using the
  tracker as an async context manager does this for you.
- `pending_count()`, `pending_command_ids()`, `is_tracking()` and
  `statistics()` report on the commands still waiting.

## What this package does not do

This package opens no sockets. It has no client that sends commands and no
server that answers them. It has no built-in commands. It does not check
commands against a description of a service's channels and commands. Sending
and receiving the framed bytes is left to the application.

## Running the tests

```
pip install -e ".[test]"
pytest
```