# SPDX-License-Identifier: BSD-3-Clause

"""
The application under test.

Test cases do not talk to a web framework directly; they go through an
L{Application} object that they create themselves (see
L{ControllerTestCase.create_application}). The object has an explicit
lifecycle: it is created, bootstrapped once, handles any number of
dispatches and is closed when the test case resets.

L{WSGIApplication} adapts any WSGI callable. Frameworks that know which
route, module, controller and action handled a request can report that
by storing a L{RouteMatch} in the WSGI environ under L{ROUTE_MATCH_KEY}.
"""

from __future__ import annotations

import sys
from io import BytesIO
from logging import getLogger
from types import TracebackType
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Type
from urllib.parse import unquote, urlsplit
from wsgiref.util import setup_testing_defaults

from mvctest.config import Settings
from mvctest.request import Request
from mvctest.response import Headers, Response

_LOG = getLogger(__name__)

ROUTE_MATCH_KEY = "mvctest.route_match"
"""WSGI environ key under which an application can store its L{RouteMatch}."""

ExcInfo = Tuple[Type[BaseException], BaseException, Optional[TracebackType]]
StartResponse = Callable[..., Callable[[bytes], object]]
WSGIApp = Callable[[dict, StartResponse], Iterable[bytes]]
Router = Callable[[str], Optional["RouteMatch"]]


class ApplicationError(Exception):
    """
    The application raised an exception while handling a request.

    The original exception is available as C{__cause__}.
    """


class RouteMatch:
    """Describes which part of the application handled a request."""

    def __init__(
        self,
        route: str,
        module: str = "",
        controller: str = "",
        action: str = "",
        params: Mapping[str, Any] | None = None,
    ):
        self.route = route
        """Name of the matched route."""

        self.module = module
        """Name of the module containing the controller."""

        self.controller = controller
        """Name of the controller."""

        self.action = action
        """Name of the controller action."""

        self.params = dict(params or {})
        """Parameters extracted from the URL by the route."""

    def __repr__(self) -> str:
        return (
            f"RouteMatch({self.route!r}, module={self.module!r}, "
            f"controller={self.controller!r}, action={self.action!r})"
        )


class Application:
    """
    Interface to the application under test.

    Subclasses must implement L{handle}; the other methods have
    usable defaults.
    """

    def __init__(self) -> None:
        self.route_match: RouteMatch | None = None
        """How the last dispatched request was routed, if known."""

        self.exception: BaseException | None = None
        """The exception raised while handling the last request, if any."""

        self.bootstrapped = False
        """C{True} after L{bootstrap} has been called."""

    def bootstrap(self) -> None:
        """
        Prepare the application for handling requests.

        Called once, right after the test case created the application.
        The default implementation only marks the application as ready.
        """
        self.bootstrapped = True

    def handle(self, request: Request) -> tuple[Response, RouteMatch | None]:
        """
        Let the framework handle one request.

        @return: C{(response, route_match)}
        """
        raise NotImplementedError

    def dispatch(self, request: Request) -> Response:
        """
        Handle one request and remember how it went.

        An exception raised by the framework does not propagate:
        it is stored in L{exception} and a 500 response is returned.
        """
        if not self.bootstrapped:
            self.bootstrap()
        self.route_match = None
        self.exception = None
        _LOG.debug("Dispatching %s %s", request.method, request)
        try:
            response, self.route_match = self.handle(request)
        except Exception as ex:  # pylint: disable=broad-except
            _LOG.info("Application raised an exception", exc_info=True)
            self.exception = ex
            return Response(500)
        _LOG.debug("Response status: %d", response.status_code)
        return response

    def match_route(self, url: str) -> RouteMatch | None:  # pylint: disable=unused-argument
        """
        Determine which route would handle the given URL, without
        dispatching a request.

        The default implementation does not support this and
        returns C{None}.
        """
        return None

    def close(self) -> None:
        """
        Release any resources the application holds.

        There will not be any more calls to the application after it is
        closed. The default implementation does nothing.
        """


class WSGIApplication(Application):
    """Runs a WSGI application in-process."""

    def __init__(
        self,
        wsgi_app: WSGIApp,
        settings: Settings | None = None,
        router: Router | None = None,
    ):
        """
        Wrap a WSGI callable.

        @param wsgi_app:
            The WSGI application to test.
        @param settings:
            Determines the server name, port and scheme in the environ.
        @param router:
            Optional callable that maps a URL to a L{RouteMatch};
            used by L{match_route}.
        """
        super().__init__()
        self.wsgi_app = wsgi_app
        self.settings = settings or Settings()
        self.router = router

    def build_environ(self, request: Request) -> dict[str, Any]:
        """Create a WSGI environ for the given request."""
        settings = self.settings
        body = request.body()
        environ: dict[str, Any] = {
            "REQUEST_METHOD": request.method,
            "PATH_INFO": unquote(request.path),
            "QUERY_STRING": request.query_string,
            "SERVER_NAME": settings.server_name,
            "SERVER_PORT": settings.server_port,
            "HTTP_HOST": settings.server_name,
            "CONTENT_LENGTH": str(len(body)),
            "wsgi.url_scheme": settings.url_scheme,
            "wsgi.input": BytesIO(body),
            "wsgi.errors": sys.stderr,
        }
        host = urlsplit(request.page_url).netloc
        if host:
            environ["HTTP_HOST"] = host
        if request.post and request.content is None:
            environ["CONTENT_TYPE"] = "application/x-www-form-urlencoded"
        for header in request.headers:
            key = header.name.upper().replace("-", "_")
            if key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                environ[key] = header.value
            else:
                environ["HTTP_" + key] = header.value
        if request.cookies:
            environ["HTTP_COOKIE"] = "; ".join(
                f"{name}={value}" for name, value in request.cookies.items()
            )
        setup_testing_defaults(environ)
        return environ

    def handle(self, request: Request) -> tuple[Response, RouteMatch | None]:
        environ = self.build_environ(request)
        response = Response()
        written: list[bytes] = []

        def start_response(
            status: str,
            headers: list[tuple[str, str]],
            exc_info: ExcInfo | None = None,
        ) -> Callable[[bytes], object]:
            if exc_info is not None:
                try:
                    raise exc_info[1].with_traceback(exc_info[2])
                finally:
                    exc_info = None
            code, _, reason = status.partition(" ")
            response.set_status(int(code), reason or None)
            response.headers = Headers(headers)
            return written.append

        result = self.wsgi_app(environ, start_response)
        try:
            for chunk in result:
                written.append(chunk)
        finally:
            close = getattr(result, "close", None)
            if close is not None:
                close()
        response.body = b"".join(written)

        route_match = environ.get(ROUTE_MATCH_KEY)
        if route_match is not None and not isinstance(route_match, RouteMatch):
            raise TypeError(
                f'Environ key "{ROUTE_MATCH_KEY}" holds '
                f'"{route_match.__class__.__name__}" instead of a RouteMatch'
            )
        return response, route_match

    def match_route(self, url: str) -> RouteMatch | None:
        if self.router is None:
            return None
        return self.router(url)
