# SPDX-License-Identifier: BSD-3-Clause

"""
Test case base classes for functional tests of web applications.

Subclass L{HttpControllerTestCase} (or L{ControllerTestCase} if you do
not need the HTTP specific assertions) and implement
L{create_application<ControllerTestCase.create_application>}::

    class IndexTest(HttpControllerTestCase):

        def create_application(self):
            return WSGIApplication(make_app(), self.get_settings())

        def test_index(self):
            self.dispatch("/")
            self.assertResponseStatusCode(200)
            self.assertQueryCount("ul.menu li", 3)

The assertion methods follow the C{unittest} naming convention.
Each of them accepts an optional C{msg} argument, which is put in front
of the diagnostic when the assertion fails.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Iterable, Mapping, Tuple, Type, Union
from unittest import TestCase

from mvctest.application import Application, ApplicationError, RouteMatch
from mvctest.assertions import (
    AssertionOutcome,
    ExpectationFailed,
    HeaderCheck,
    QueryCheck,
    RedirectCheck,
    RegexT,
    check_header,
    check_query,
    check_redirect,
    check_value,
)
from mvctest.config import Settings
from mvctest.query import MatchResult, QueryMode, QueryTarget, execute_query
from mvctest.report import AssertionReport, Scribe
from mvctest.request import Request
from mvctest.response import HeaderLookup, Response

_LOG = getLogger(__name__)

Params = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class ControllerTestCase(TestCase):
    """
    Dispatches requests to an application and checks how they were handled.

    The request, response and application objects are created on first
    access and thrown away by L{reset}, which runs before and after
    every test.
    """

    failureException = ExpectationFailed

    trace_error: bool | None = None
    """
    Re-raise exceptions from the application in L{dispatch}?

    When C{None}, L{Settings.trace_error} decides.
    """

    settings: Settings | None = None
    """
    Harness configuration. When running under pytest, the plugin fills
    this in; otherwise it is read from the environment on first use.
    """

    scribe: Scribe | None = None
    """If set, the assertion report is added here when the test ends."""

    def __init__(self, methodName: str = "runTest"):
        super().__init__(methodName)
        self._application: Application | None = None
        self._request: Request | None = None
        self._response: Response | None = None
        self.report = AssertionReport(self.id())
        """Records the assertions performed by this test."""

    def setUp(self) -> None:
        super().setUp()
        self.reset()

    def tearDown(self) -> None:
        self.reset()
        if self.scribe is not None:
            self.scribe.add_report(self.report)
        super().tearDown()

    def create_application(self) -> Application:
        """
        Create the application under test.

        Test cases must override this. The returned application is
        bootstrapped by L{get_application}.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement create_application()"
        )

    def get_settings(self) -> Settings:
        """Return the harness configuration."""
        if self.settings is None:
            self.settings = Settings.from_env()
        return self.settings

    def should_trace_error(self) -> bool:
        """Should L{dispatch} re-raise exceptions from the application?"""
        if self.trace_error is not None:
            return self.trace_error
        return self.get_settings().trace_error

    def get_application(self) -> Application:
        """Return the application under test, creating it if necessary."""
        if self._application is None:
            application = self.create_application()
            _LOG.debug("Bootstrapping %s", application.__class__.__name__)
            application.bootstrap()
            self._application = application
        return self._application

    def get_request(self) -> Request:
        """Return the current request, creating an empty one if necessary."""
        if self._request is None:
            self._request = Request()
        return self._request

    def get_response(self) -> Response:
        """Return the current response, creating an empty one if necessary."""
        if self._response is None:
            self._response = Response()
        return self._response

    def reset(self) -> None:
        """Close the application and discard the request and response."""
        if self._application is not None:
            self._application.close()
            self._application = None
        self.reset_request()
        self.reset_response()

    def reset_request(self) -> "ControllerTestCase":
        """
        Discard the current request.

        Useful for tests that need to make multiple trips to the server.
        """
        self._request = None
        return self

    def reset_response(self) -> "ControllerTestCase":
        """
        Discard the current response.

        Useful for tests that need to make multiple trips to the server.
        """
        self._response = None
        return self

    def dispatch(
        self,
        url: str | None = None,
        method: str | None = None,
        params: Params | None = None,
        is_xml_http_request: bool = False,
    ) -> Response:
        """
        Dispatch a request to the application.

        @param url:
            Path to request, optionally with a query. If C{None},
            the current request is dispatched as-is.
        @param method:
            HTTP method; if C{None}, the method of the current request
            is kept (C{GET} for a fresh request).
        @param params:
            Arguments to send: they are added to the query for C{GET}
            requests and to the form body otherwise.
        @param is_xml_http_request:
            If C{True}, the request is flagged as made by a script.
        @return:
            The response, which is also available from L{get_response}.
        @raise ApplicationError:
            If the application raised an exception and
            L{should_trace_error} is C{True}.
        """

        request = self.get_request()
        if url is not None:
            request.set_uri(url)
        if method is not None:
            request.method = method.upper()
        if params:
            pairs = list(params.items() if isinstance(params, Mapping) else params)
            if request.method == "GET":
                request.query.extend(pairs)
            else:
                request.post.extend(pairs)
        if is_xml_http_request:
            request.headers.set("X-Requested-With", "XMLHttpRequest")

        application = self.get_application()
        response = application.dispatch(request)
        self._response = response

        exception = application.exception
        if exception is not None and self.should_trace_error():
            raise ApplicationError(
                f"{exception.__class__.__name__} raised while handling "
                f"{request.method} {request}: {exception}"
            ) from exception
        return response

    def _failure_message(self, msg: str | None, diagnostic: str) -> str:
        return f"{msg}\n{diagnostic}" if msg else diagnostic

    def _assert(self, outcome: AssertionOutcome, msg: str | None = None) -> None:
        """Record an outcome and raise if it is a failure."""
        self.report.record(outcome)
        if outcome.failure is not None:
            raise self.failureException(
                self._failure_message(msg, outcome.failure), outcome
            )

    def _route_match(self, msg: str | None) -> RouteMatch:
        route_match = self.get_application().route_match
        if route_match is None:
            self._assert(
                AssertionOutcome("route", "route-matched", failure="No route matched"),
                msg,
            )
        assert route_match is not None
        return route_match

    def assertModuleName(self, module: str, msg: str | None = None) -> None:
        """Assert that the last request was handled by the given module."""
        actual = self._route_match(msg).module
        self._assert(check_value("module name", module, actual), msg)

    def assertNotModuleName(self, module: str, msg: str | None = None) -> None:
        """Assert that the last request was not handled by the given module."""
        actual = self._route_match(msg).module
        self._assert(check_value("module name", module, actual, negate=True), msg)

    def assertControllerName(self, controller: str, msg: str | None = None) -> None:
        """Assert that the last request was handled by the given controller."""
        actual = self._route_match(msg).controller
        self._assert(check_value("controller name", controller, actual), msg)

    def assertNotControllerName(self, controller: str, msg: str | None = None) -> None:
        """Assert that the last request was not handled by the given controller."""
        actual = self._route_match(msg).controller
        self._assert(
            check_value("controller name", controller, actual, negate=True), msg
        )

    def assertActionName(self, action: str, msg: str | None = None) -> None:
        """Assert that the last request was handled by the given action."""
        actual = self._route_match(msg).action
        self._assert(check_value("action name", action, actual), msg)

    def assertNotActionName(self, action: str, msg: str | None = None) -> None:
        """Assert that the last request was not handled by the given action."""
        actual = self._route_match(msg).action
        self._assert(check_value("action name", action, actual, negate=True), msg)

    def assertMatchedRouteName(self, route: str, msg: str | None = None) -> None:
        """Assert that the last request matched the given route."""
        actual = self._route_match(msg).route
        self._assert(check_value("matched route name", route, actual), msg)

    def assertNotMatchedRouteName(self, route: str, msg: str | None = None) -> None:
        """Assert that the last request did not match the given route."""
        actual = self._route_match(msg).route
        self._assert(
            check_value("matched route name", route, actual, negate=True), msg
        )

    def assertResponseStatusCode(self, code: int, msg: str | None = None) -> None:
        """Assert that the response has the given status code."""
        actual = self.get_response().status_code
        self._assert(check_value("response code", code, actual), msg)

    def assertNotResponseStatusCode(self, code: int, msg: str | None = None) -> None:
        """Assert that the response does not have the given status code."""
        actual = self.get_response().status_code
        self._assert(check_value("response code", code, actual, negate=True), msg)

    def assertApplicationException(
        self,
        exception_type: Type[BaseException],
        message: str | None = None,
        msg: str | None = None,
    ) -> None:
        """
        Assert that the application raised an exception while handling
        the last request.

        This is only useful when L{trace_error} is off, since otherwise
        the exception already propagated from L{dispatch}.

        @param exception_type:
            The exception must be an instance of this class.
        @param message:
            If not C{None}, the exception's message must be exactly this.
        """
        exception = self.get_application().exception
        failure: str | None = None
        if exception is None:
            failure = "Failed asserting application exception, exception not exist"
        elif not isinstance(exception, exception_type):
            failure = (
                "Failed asserting application exception, exception type "
                f'"{exception_type.__name__}", '
                f'actual type "{exception.__class__.__name__}"'
            )
        elif message is not None and str(exception) != message:
            failure = (
                "Failed asserting application exception, exception message "
                f'"{message}", actual message "{exception}"'
            )
        self._assert(
            AssertionOutcome(
                "exception",
                "application-exception",
                exception_type,
                exception,
                failure,
            ),
            msg,
        )


class HttpControllerTestCase(ControllerTestCase):
    """
    Adds assertions on HTTP headers, redirects and the response body.

    Body assertions come in two flavors: C{assertQuery*} methods take
    a CSS selector, C{assertXpathQuery*} methods take an XPath
    expression. Only the latter use the namespaces registered with
    L{register_xpath_namespaces}.
    """

    def __init__(self, methodName: str = "runTest"):
        super().__init__(methodName)
        self.xpath_namespaces: dict[str, str] = {}
        """Maps prefixes to namespace URIs for XPath queries."""

    def register_xpath_namespaces(self, namespaces: Mapping[str, str]) -> None:
        """
        Set the namespace bindings used by XPath queries.

        The bindings replace any earlier ones and stay in effect for
        the rest of this test, also across resets.
        """
        self.xpath_namespaces = dict(namespaces)

    def get_response_header(self, name: str) -> HeaderLookup:
        """
        Look up a response header.

        @return:
            C{None} if the header is absent, the header if it occurs once,
            or a tuple of headers if it occurs multiple times.
        """
        return self.get_response().headers.get(name)

    def query(self, path: str, mode: QueryMode = QueryMode.CSS) -> MatchResult:
        """Run a CSS or XPath query on the current response body."""
        namespaces = self.xpath_namespaces if mode is QueryMode.XPATH else None
        target = QueryTarget(self.get_response().get_content(), namespaces)
        return execute_query(target, path, mode)

    def _assert_query(
        self,
        path: str,
        mode: QueryMode,
        check: QueryCheck,
        expected: Any = None,
        msg: str | None = None,
    ) -> None:
        self._assert(check_query(self.query(path, mode), check, expected), msg)

    def _assert_header(
        self,
        name: str,
        check: HeaderCheck,
        expected: RegexT | None = None,
        msg: str | None = None,
    ) -> None:
        lookup = self.get_response_header(name)
        self._assert(check_header(name, lookup, check, expected), msg)

    def _assert_redirect(
        self,
        check: RedirectCheck,
        expected: RegexT | None = None,
        msg: str | None = None,
    ) -> None:
        location = self.get_response().headers.first("Location")
        route = None
        if check in (RedirectCheck.ROUTE, RedirectCheck.NOT_ROUTE) and location:
            route_match = self.get_application().match_route(location)
            route = None if route_match is None else route_match.route
        self._assert(check_redirect(location, check, expected, route), msg)

    # Response headers:

    def assertResponseReasonPhrase(self, phrase: str, msg: str | None = None) -> None:
        """Assert that the response has the given reason phrase."""
        actual = self.get_response().reason_phrase
        self._assert(check_value("reason phrase", phrase, actual), msg)

    def assertHasResponseHeader(self, header: str, msg: str | None = None) -> None:
        """Assert that the response header exists."""
        self._assert_header(header, HeaderCheck.EXISTS, msg=msg)

    def assertNotHasResponseHeader(self, header: str, msg: str | None = None) -> None:
        """Assert that the response header does not exist."""
        self._assert_header(header, HeaderCheck.NOT_EXISTS, msg=msg)

    def assertResponseHeaderContains(
        self, header: str, match: str, msg: str | None = None
    ) -> None:
        """Assert that the response header exists and has exactly the given value."""
        self._assert_header(header, HeaderCheck.CONTAINS, match, msg)

    def assertNotResponseHeaderContains(
        self, header: str, match: str, msg: str | None = None
    ) -> None:
        """Assert that the response header exists and does not have the given value."""
        self._assert_header(header, HeaderCheck.NOT_CONTAINS, match, msg)

    def assertResponseHeaderRegex(
        self, header: str, pattern: RegexT, msg: str | None = None
    ) -> None:
        """Assert that the response header exists and matches the given pattern."""
        self._assert_header(header, HeaderCheck.REGEX, pattern, msg)

    def assertNotResponseHeaderRegex(
        self, header: str, pattern: RegexT, msg: str | None = None
    ) -> None:
        """Assert that the response header exists and does not match the pattern."""
        self._assert_header(header, HeaderCheck.NOT_REGEX, pattern, msg)

    # Redirects:

    def assertRedirect(self, msg: str | None = None) -> None:
        """Assert that the response is a redirect."""
        self._assert_redirect(RedirectCheck.REDIRECT, msg=msg)

    def assertNotRedirect(self, msg: str | None = None) -> None:
        """Assert that the response is not a redirect."""
        self._assert_redirect(RedirectCheck.NOT_REDIRECT, msg=msg)

    def assertRedirectTo(self, url: str, msg: str | None = None) -> None:
        """Assert that the response redirects to the given URL."""
        self._assert_redirect(RedirectCheck.TO, url, msg)

    def assertNotRedirectTo(self, url: str, msg: str | None = None) -> None:
        """Assert that the response is a redirect, but not to the given URL."""
        self._assert_redirect(RedirectCheck.NOT_TO, url, msg)

    def assertRedirectRegex(self, pattern: RegexT, msg: str | None = None) -> None:
        """Assert that the response redirects to a URL matching the pattern."""
        self._assert_redirect(RedirectCheck.REGEX, pattern, msg)

    def assertNotRedirectRegex(self, pattern: RegexT, msg: str | None = None) -> None:
        """Assert that the response redirects to a URL not matching the pattern."""
        self._assert_redirect(RedirectCheck.NOT_REGEX, pattern, msg)

    def assertRedirectToRoute(self, route: str, msg: str | None = None) -> None:
        """Assert that the response redirects to a URL handled by the given route."""
        self._assert_redirect(RedirectCheck.ROUTE, route, msg)

    def assertNotRedirectToRoute(self, route: str, msg: str | None = None) -> None:
        """Assert that the response does not redirect to the given route."""
        self._assert_redirect(RedirectCheck.NOT_ROUTE, route, msg)

    # CSS selector queries:

    def assertQuery(self, path: str, msg: str | None = None) -> None:
        """Assert that the CSS selector matches at least one node."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.EXISTS, msg=msg)

    def assertNotQuery(self, path: str, msg: str | None = None) -> None:
        """Assert that the CSS selector matches no nodes."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.NOT_EXISTS, msg=msg)

    def assertQueryCount(self, path: str, count: int, msg: str | None = None) -> None:
        """Assert that the CSS selector matches exactly C{count} nodes."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.COUNT, count, msg)

    def assertNotQueryCount(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the CSS selector does not match exactly C{count} nodes."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.NOT_COUNT, count, msg)

    def assertQueryCountMin(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the CSS selector matches at least C{count} nodes."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.COUNT_MIN, count, msg)

    def assertQueryCountMax(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the CSS selector matches at most C{count} nodes."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.COUNT_MAX, count, msg)

    def assertQueryContentContains(
        self, path: str, match: str, msg: str | None = None
    ) -> None:
        """Assert that a node matched by the CSS selector has exactly this text."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.CONTAINS, match, msg)

    def assertNotQueryContentContains(
        self, path: str, match: str, msg: str | None = None
    ) -> None:
        """Assert that the CSS selector matches, but no node has exactly this text."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.NOT_CONTAINS, match, msg)

    def assertQueryContentRegex(
        self, path: str, pattern: RegexT, msg: str | None = None
    ) -> None:
        """Assert that the text of a node matched by the CSS selector matches."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.REGEX, pattern, msg)

    def assertNotQueryContentRegex(
        self, path: str, pattern: RegexT, msg: str | None = None
    ) -> None:
        """Assert that the CSS selector matches, but no node text matches."""
        self._assert_query(path, QueryMode.CSS, QueryCheck.NOT_REGEX, pattern, msg)

    # XPath queries:

    def assertXpathQuery(self, path: str, msg: str | None = None) -> None:
        """Assert that the XPath expression matches at least one node."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.EXISTS, msg=msg)

    def assertNotXpathQuery(self, path: str, msg: str | None = None) -> None:
        """Assert that the XPath expression matches no nodes."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.NOT_EXISTS, msg=msg)

    def assertXpathQueryCount(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the XPath expression matches exactly C{count} nodes."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.COUNT, count, msg)

    def assertNotXpathQueryCount(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the XPath expression does not match exactly C{count} nodes."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.NOT_COUNT, count, msg)

    def assertXpathQueryCountMin(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the XPath expression matches at least C{count} nodes."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.COUNT_MIN, count, msg)

    def assertXpathQueryCountMax(
        self, path: str, count: int, msg: str | None = None
    ) -> None:
        """Assert that the XPath expression matches at most C{count} nodes."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.COUNT_MAX, count, msg)

    def assertXpathQueryContentContains(
        self, path: str, match: str, msg: str | None = None
    ) -> None:
        """Assert that a node matched by the XPath expression has exactly this text."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.CONTAINS, match, msg)

    def assertNotXpathQueryContentContains(
        self, path: str, match: str, msg: str | None = None
    ) -> None:
        """Assert that the XPath expression matches, but no node has this text."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.NOT_CONTAINS, match, msg)

    def assertXpathQueryContentRegex(
        self, path: str, pattern: RegexT, msg: str | None = None
    ) -> None:
        """Assert that the text of a node matched by the XPath expression matches."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.REGEX, pattern, msg)

    def assertNotXpathQueryContentRegex(
        self, path: str, pattern: RegexT, msg: str | None = None
    ) -> None:
        """Assert that the XPath expression matches, but no node text matches."""
        self._assert_query(path, QueryMode.XPATH, QueryCheck.NOT_REGEX, pattern, msg)
