import logging
import typing
from python_multipart.multipart import parse_options_header
from starlette.datastructures import ImmutableMultiDict, UploadFile
from starlette.formparsers import FormParser, MultiPartException, MultiPartParser
from starlette.requests import ClientDisconnect

from starlette_method_override.requests import BODY_METHODS, Request

__all__ = ["get_form", "FORM_SCOPE_KEY", "POST_MAX_MEMORY"]

logger = logging.getLogger(__name__)

FORM_SCOPE_KEY = "method_override.form"
POST_MAX_MEMORY = 32 << 20


async def _stream(body: bytes) -> typing.AsyncGenerator[bytes, None]:
    yield body
    yield b""


async def _parse_body(request: Request, body: bytes, max_memory: int) -> list[tuple[str, str]]:
    content_type, _ = parse_options_header(request.headers.get("content-type", ""))
    if content_type == b"multipart/form-data":
        multipart_parser = MultiPartParser(request.headers, _stream(body))
        multipart_parser.spool_max_size = max_memory
        form_data = await multipart_parser.parse()
        values = []
        for key, value in form_data.multi_items():
            if isinstance(value, UploadFile):
                await value.close()
            else:
                values.append((key, value))
        return values

    if content_type == b"application/x-www-form-urlencoded":
        form_parser = FormParser(request.headers, _stream(body))
        form_data = await form_parser.parse()
        return [(key, typing.cast(str, value)) for key, value in form_data.multi_items()]

    # not a form, only the query string is available
    return []


async def get_form(
    request: Request,
    max_memory: int = POST_MAX_MEMORY,
    allow_body_consumption: bool = True,
) -> tuple[ImmutableMultiDict, bool]:
    """
    Return form values (body fields followed by URL query parameters) of the request.

    The body is read only for POST, PUT and PATCH requests and only when allow_body_consumption is set. Whatever
    is read is put back into the request's receive channel so the next consumer gets the complete body. Parsed
    values are cached in the request scope, a second call does not touch the body again.

    Malformed bodies and client disconnects are reported as "not found".
    """
    if FORM_SCOPE_KEY in request.scope:
        form = request.scope[FORM_SCOPE_KEY]
        return form, len(form) > 0

    body_values: list[tuple[str, str]] = []
    if request.method.upper() in BODY_METHODS and allow_body_consumption:
        try:
            body = await request.buffer_body()
        except ClientDisconnect:
            logger.debug("Client disconnected while reading form data.")
            return ImmutableMultiDict(), False

        if not body:
            return ImmutableMultiDict(), False

        try:
            body_values = await _parse_body(request, body, max_memory)
        except (MultiPartException, ValueError) as ex:
            logger.debug("Cannot parse form data: %s", ex)
            return ImmutableMultiDict(), False

    form = ImmutableMultiDict([*body_values, *request.query_params.multi_items()])
    request.scope[FORM_SCOPE_KEY] = form
    return form, len(form) > 0
