from __future__ import annotations

import typing
from starlette import requests
from starlette.requests import ClientDisconnect, HTTPConnection
from starlette.types import Message, Receive

__all__ = ["Request", "ReplayReceive", "get_original_method", "BODY_METHODS"]

BODY_METHODS = ("POST", "PUT", "PATCH")


class ReplayReceive:
    """
    An ASGI receive channel that replays an already drained request body.

    Buffered messages are returned first, after that calls are delegated to the original channel so the app
    still observes client disconnects.
    """

    def __init__(self, receive: Receive, body: bytes, disconnected: bool = False) -> None:
        self.receive = receive
        self.body = body
        self.disconnected = disconnected
        self._messages: list[Message] = [{"type": "http.request", "body": body, "more_body": disconnected}]
        if disconnected:
            self._messages.append({"type": "http.disconnect"})

    async def __call__(self) -> Message:
        if self._messages:
            return self._messages.pop(0)
        return await self.receive()


class Request(requests.Request):
    async def buffer_body(self) -> bytes:
        """
        Read the whole request body and put it back into the receive channel.

        Raises ClientDisconnect when the client goes away before the body is complete, the partial body stays
        replayable in that case too.
        """
        if isinstance(self._receive, ReplayReceive):
            if self._receive.disconnected:
                raise ClientDisconnect()
            return self._receive.body

        chunks: list[bytes] = []
        disconnected = False
        while True:
            message = await self._receive()
            if message["type"] == "http.request":
                chunks.append(message.get("body", b""))
                if not message.get("more_body", False):
                    break
            elif message["type"] == "http.disconnect":
                disconnected = True
                break

        body = b"".join(chunks)
        self._receive = ReplayReceive(self._receive, body, disconnected=disconnected)
        if disconnected:
            raise ClientDisconnect()
        return body


def get_original_method(connection: HTTPConnection, key: str) -> typing.Optional[str]:
    """Get the method the client sent before it was overridden, None when it was not saved."""
    return connection.scope.get("state", {}).get(key)
