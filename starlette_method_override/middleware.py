import logging
import typing
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from starlette_method_override.options import Directive, Options, build_options
from starlette_method_override.requests import Request

__all__ = ["MethodOverrideMiddleware", "method_override"]

logger = logging.getLogger(__name__)


class MethodOverrideMiddleware:
    """
    Replace the request method with the one sent in a header, form field or query parameter.

    Only requests with eligible methods (POST by default) are overridden. Useful for HTML forms and clients that
    cannot send DELETE, PUT or PATCH requests.
    """

    def __init__(self, app: ASGIApp, options: Options | None = None) -> None:
        self.app = app
        self.options = options or build_options()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        original_method = scope["method"].upper()
        if not self.options.can_override(original_method):
            return await self.app(scope, receive, send)

        request = Request(scope, receive)
        response_headers = MutableHeaders()
        method = await self.options.resolve(response_headers, request)
        receive = request.receive  # replays the body if an extractor has read it
        if response_headers:
            send = self._send_with_headers(send, response_headers)

        if method:
            if key := self.options.original_method_key:
                scope = {**scope, "state": {**scope.get("state", {}), key: original_method}}
            scope["method"] = method
            logger.debug("Overriding %s method with %s for %s.", original_method, method, scope["path"])

        await self.app(scope, receive, send)

    def _send_with_headers(self, send: Send, response_headers: MutableHeaders) -> Send:
        async def sender(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for key, value in response_headers.items():
                    if key == "vary":
                        headers.add_vary_header(value)
                    else:
                        headers.append(key, value)
            await send(message)

        return sender


def method_override(*directives: Directive) -> typing.Callable[[ASGIApp], ASGIApp]:
    """
    Create a wrapper that adds method override support to an ASGI app.

    Defaults are applied first: POST requests are overridden by X-HTTP-Method, X-HTTP-Method-Override and
    X-Method-Override headers, then by the "_method" form field, then by the "_method" query parameter.

    Example:
        app = method_override(save_original_method("original_method"))(app)
    """
    options = build_options(*directives)

    def wrapper(app: ASGIApp) -> ASGIApp:
        return MethodOverrideMiddleware(app, options=options)

    return wrapper
