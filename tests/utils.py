import typing
from starlette.types import Message, Receive, Scope

from starlette_method_override.requests import Request


def make_receive(*chunks: bytes, disconnect: bool = False) -> Receive:
    """Create a receive channel that sends body chunks, then disconnect messages."""
    messages: list[Message] = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1 or disconnect}
        for index, chunk in enumerate(chunks)
    ]
    if disconnect:
        messages.append({"type": "http.disconnect"})

    async def receive() -> Message:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


def make_scope(
    method: str = "POST",
    path: str = "/",
    query_string: bytes = b"",
    headers: typing.Mapping[str, str] | None = None,
) -> Scope:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
    }


def make_request(
    method: str = "POST",
    body: bytes | list[bytes] = b"",
    content_type: str = "application/x-www-form-urlencoded",
    query_string: bytes = b"",
    headers: typing.Mapping[str, str] | None = None,
    disconnect: bool = False,
) -> Request:
    chunks = body if isinstance(body, list) else [body]
    scope = make_scope(method, query_string=query_string, headers={"content-type": content_type, **(headers or {})})
    return Request(scope, make_receive(*chunks, disconnect=disconnect))


async def read_all(receive: Receive) -> bytes:
    chunks = []
    while True:
        message = await receive()
        chunks.append(message.get("body", b""))
        if message["type"] != "http.request" or not message.get("more_body", False):
            break
    return b"".join(chunks)
