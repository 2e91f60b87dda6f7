import inspect
import logging
import typing
from starlette.datastructures import MutableHeaders
from starlette.requests import ClientDisconnect

from starlette_method_override.forms import POST_MAX_MEMORY, get_form
from starlette_method_override.requests import Request

__all__ = ["Extractor", "HeaderExtractor", "FormFieldExtractor", "QueryExtractor", "extract"]

logger = logging.getLogger(__name__)


class Extractor(typing.Protocol):  # pragma: nocover
    def __call__(
        self, response_headers: MutableHeaders, request: Request
    ) -> typing.Optional[str] | typing.Awaitable[typing.Optional[str]]:
        ...


class HeaderExtractor:
    """
    Read the method from the first present request header.

    Adds "Vary: <header>" to the response so caches keep overridden and plain responses apart.
    """

    def __init__(self, *header_names: str) -> None:
        self.header_names = header_names

    def __call__(self, response_headers: MutableHeaders, request: Request) -> typing.Optional[str]:
        for header_name in self.header_names:
            if value := request.headers.get(header_name):
                response_headers.append("vary", header_name)
                return value
        return None

    def __repr__(self) -> str:
        return f"<HeaderExtractor: {', '.join(self.header_names)}>"


class FormFieldExtractor:
    """
    Read the method from a form field, eg. <input type="hidden" name="_method" value="DELETE">.

    URL encoded and multipart bodies are supported. The request body stays readable for the app.
    """

    def __init__(self, field_name: str, max_memory: int = POST_MAX_MEMORY) -> None:
        self.field_name = field_name
        self.max_memory = max_memory

    async def __call__(self, response_headers: MutableHeaders, request: Request) -> typing.Optional[str]:
        form, found = await get_form(request, self.max_memory, allow_body_consumption=True)
        if found and (values := form.getlist(self.field_name)):
            return values[0]
        return None

    def __repr__(self) -> str:
        return f"<FormFieldExtractor: {self.field_name}>"


class QueryExtractor:
    """Read the method from a query parameter, eg. /path?_method=DELETE."""

    def __init__(self, param_name: str) -> None:
        self.param_name = param_name

    def __call__(self, response_headers: MutableHeaders, request: Request) -> typing.Optional[str]:
        if values := request.query_params.getlist(self.param_name):
            return values[0]
        return None

    def __repr__(self) -> str:
        return f"<QueryExtractor: {self.param_name}>"


async def extract(extractor: Extractor, response_headers: MutableHeaders, request: Request) -> str:
    """Call the extractor, a failing extractor means "not found"."""
    try:
        value = extractor(response_headers, request)
        if inspect.isawaitable(value):
            value = await value
    except ClientDisconnect:
        logger.debug("Client disconnected while %r was reading the request.", extractor)
        return ""
    except Exception:
        logger.debug("Extractor %r failed.", extractor, exc_info=True)
        return ""
    return value or ""
