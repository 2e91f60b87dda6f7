from __future__ import annotations

import dataclasses
import functools
import typing
from starlette.datastructures import MutableHeaders

from starlette_method_override.extractors import (
    Extractor,
    FormFieldExtractor,
    HeaderExtractor,
    QueryExtractor,
    extract,
)
from starlette_method_override.forms import POST_MAX_MEMORY
from starlette_method_override.requests import Request

__all__ = [
    "Options",
    "Directive",
    "build_options",
    "methods",
    "headers",
    "form_field",
    "query",
    "getter",
    "save_original_method",
    "only",
    "DEFAULT_METHODS",
    "DEFAULT_HEADERS",
    "DEFAULT_FORM_FIELD",
    "DEFAULT_QUERY_PARAM",
]

DEFAULT_METHODS = ("POST",)
DEFAULT_HEADERS = ("X-HTTP-Method", "X-HTTP-Method-Override", "X-Method-Override")
DEFAULT_FORM_FIELD = "_method"
DEFAULT_QUERY_PARAM = "_method"


@dataclasses.dataclass(frozen=True)
class Options:
    """
    Method override settings.

    Options are immutable, directives return modified copies. Build them with `build_options` which applies
    the defaults first.
    """

    methods: frozenset[str] = frozenset()
    extractors: tuple[Extractor, ...] = ()
    original_method_key: str | None = None

    def configure(self, *directives: Directive) -> Options:
        return functools.reduce(lambda options, directive: directive(options), directives, self)

    def can_override(self, method: str) -> bool:
        """Test if requests with this method (already upper-cased) may be overridden."""
        return method in self.methods

    async def resolve(self, response_headers: MutableHeaders, request: Request) -> str:
        """Return the upper-cased method from the first extractor that has one, or an empty string."""
        for extractor in self.extractors:
            if value := await extract(extractor, response_headers, request):
                return value.upper()
        return ""


Directive = typing.Callable[[Options], Options]


def methods(*names: str, replace: bool = False) -> Directive:
    """Allow requests with these methods to be overridden. Defaults to POST only."""
    new_methods = frozenset(name.upper() for name in names)

    def directive(options: Options) -> Options:
        return dataclasses.replace(options, methods=new_methods if replace else options.methods | new_methods)

    return directive


def getter(extractor: Extractor) -> Directive:
    """Use custom logic to read the method. The callable may be sync or async."""

    def directive(options: Options) -> Options:
        return dataclasses.replace(options, extractors=(*options.extractors, extractor))

    return directive


def headers(*header_names: str) -> Directive:
    """Read the method from request headers, the first present header wins."""
    return getter(HeaderExtractor(*header_names))


def form_field(field_name: str, max_memory: int = POST_MAX_MEMORY) -> Directive:
    """Read the method from a URL encoded or multipart form field."""
    return getter(FormFieldExtractor(field_name, max_memory=max_memory))


def query(param_name: str) -> Directive:
    """Read the method from a query string parameter."""
    return getter(QueryExtractor(param_name))


def save_original_method(key: str | None) -> Directive:
    """
    Keep the original method in request state under this key.

    It can be read back with `request.state` or `get_original_method`. None disables saving.
    """

    def directive(options: Options) -> Options:
        return dataclasses.replace(options, original_method_key=key)

    return directive


def only(*directives: Directive) -> Directive:
    """
    Forget default and previously registered extractors and use only the given ones.

    Example, check the custom header and nothing else:
        build_options(only(headers("X-Custom-Header")))
    """

    def directive(options: Options) -> Options:
        return dataclasses.replace(options, extractors=()).configure(*directives)

    return directive


def build_options(*directives: Directive) -> Options:
    return Options().configure(
        methods(*DEFAULT_METHODS),
        headers(*DEFAULT_HEADERS),
        form_field(DEFAULT_FORM_FIELD),
        query(DEFAULT_QUERY_PARAM),
        *directives,
    )
