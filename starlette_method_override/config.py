import os
import pathlib
import typing
from starlette.config import Config as BaseConfig
from starlette.config import Environ
from starlette.datastructures import CommaSeparatedStrings

from starlette_method_override.forms import POST_MAX_MEMORY
from starlette_method_override.options import (
    DEFAULT_FORM_FIELD,
    DEFAULT_HEADERS,
    DEFAULT_METHODS,
    DEFAULT_QUERY_PARAM,
    Directive,
    Options,
    build_options,
    form_field,
    headers,
    methods,
    only,
    query,
    save_original_method,
)

__all__ = ["Config", "options_from_config"]


class Config(BaseConfig):
    """Environment configuration, values can also be read from .env files. Keys are prefixed with METHOD_OVERRIDE_."""

    def __init__(
        self,
        env_files: list[str | pathlib.Path] | None = None,
        env_prefix: str = "METHOD_OVERRIDE_",
        environ: typing.Mapping[str, str] | None = None,
    ):
        env_files = env_files or []
        super().__init__(None, environ if environ is not None else Environ(), env_prefix)
        for env_file in env_files:
            if os.path.exists(env_file) and os.path.isfile(env_file):
                self.file_values.update(self._read_file(env_file))


def options_from_config(config: Config) -> Options:
    """
    Build options from configuration.

    Recognized keys: METHODS, HEADERS, FORM_FIELD, QUERY_PARAM, ORIGINAL_METHOD_KEY and MAX_MEMORY.
    An empty HEADERS, FORM_FIELD or QUERY_PARAM value disables that source.
    """
    allowed_methods = config("METHODS", cast=CommaSeparatedStrings, default=",".join(DEFAULT_METHODS))
    header_names = config("HEADERS", cast=CommaSeparatedStrings, default=",".join(DEFAULT_HEADERS))
    field_name = config("FORM_FIELD", default=DEFAULT_FORM_FIELD)
    param_name = config("QUERY_PARAM", default=DEFAULT_QUERY_PARAM)
    original_method_key = config("ORIGINAL_METHOD_KEY", default=None)
    max_memory = config("MAX_MEMORY", cast=int, default=POST_MAX_MEMORY)

    sources: list[Directive] = []
    if header_names:
        sources.append(headers(*header_names))
    if field_name:
        sources.append(form_field(field_name, max_memory=max_memory))
    if param_name:
        sources.append(query(param_name))

    return build_options(
        methods(*allowed_methods, replace=True),
        only(*sources),
        save_original_method(original_method_key or None),
    )
