from starlette_method_override.config import Config, options_from_config
from starlette_method_override.extractors import Extractor, FormFieldExtractor, HeaderExtractor, QueryExtractor
from starlette_method_override.forms import get_form
from starlette_method_override.middleware import MethodOverrideMiddleware, method_override
from starlette_method_override.options import (
    Options,
    build_options,
    form_field,
    getter,
    headers,
    methods,
    only,
    query,
    save_original_method,
)
from starlette_method_override.requests import Request, get_original_method

__all__ = [
    "MethodOverrideMiddleware",
    "method_override",
    "Options",
    "build_options",
    "methods",
    "headers",
    "form_field",
    "query",
    "getter",
    "save_original_method",
    "only",
    "Extractor",
    "HeaderExtractor",
    "FormFieldExtractor",
    "QueryExtractor",
    "Request",
    "get_form",
    "get_original_method",
    "Config",
    "options_from_config",
]

__version__ = "0.1.0"
