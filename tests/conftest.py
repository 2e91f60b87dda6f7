import pytest
import typing
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import BaseRoute, Route
from starlette.testclient import TestClient
from starlette.types import ASGIApp

from starlette_method_override import get_original_method


class AppFactory(typing.Protocol):  # pragma: nocover
    def __call__(
        self,
        debug: bool = True,
        middleware: list[Middleware] | None = None,
        routes: typing.Iterable[BaseRoute] | None = None,
        **kwargs: typing.Any,
    ) -> Starlette:
        ...


class ClientFactory(typing.Protocol):  # pragma: nocover
    def __call__(
        self,
        debug: bool = True,
        middleware: list[Middleware] | None = None,
        routes: typing.Iterable[BaseRoute] | None = None,
        raise_server_exceptions: bool = True,
        app: ASGIApp | None = None,
        **kwargs: typing.Any,
    ) -> TestClient:
        ...


async def echo_view(request: Request) -> JSONResponse:
    """Respond with what the app sees after the middleware."""
    body = await request.body()
    form = await request.form()
    return JSONResponse(
        {
            "method": request.method,
            "form": {key: value for key, value in form.items() if isinstance(value, str)},
            "body": body.decode(errors="replace"),
            "original_method": get_original_method(request, "_originalMethod"),
        }
    )


ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@pytest.fixture
def routes() -> list[BaseRoute]:
    return [
        Route("/path", echo_view, methods=ALL_METHODS),
        Route("/path2", echo_view, methods=["DELETE"]),
    ]


@pytest.fixture
def test_app_factory(routes: list[BaseRoute]) -> AppFactory:
    def factory(*args: typing.Any, **kwargs: typing.Any) -> Starlette:
        kwargs.setdefault("debug", True)
        kwargs.setdefault("routes", routes)
        kwargs.setdefault("middleware", [])
        return Starlette(*args, **kwargs)

    return factory


@pytest.fixture
def test_client_factory(test_app_factory: AppFactory) -> ClientFactory:
    def factory(**kwargs: typing.Any) -> TestClient:
        raise_server_exceptions = kwargs.pop("raise_server_exceptions", True)
        app = kwargs.pop("app", None) or test_app_factory(**kwargs)
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return typing.cast(ClientFactory, factory)
