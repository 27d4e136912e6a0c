# SPDX-License-Identifier: BSD-3-Clause

"""Home of the L{Request} class."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import parse_qsl, quote_plus, urlencode, urlsplit, urlunsplit

from mvctest.response import Headers


def parse_query(query_str: str) -> list[tuple[str, str]]:
    """
    Split a URL query string into C{(key, value)} pairs.

    Parts without a value get an empty value; empty parts are skipped.
    """
    return parse_qsl(query_str, keep_blank_values=True)


class Request:
    """
    A simulated HTTP request, to be dispatched to the application under test.

    A test case owns one request at a time; L{ControllerTestCase.dispatch}
    fills it in and L{ControllerTestCase.reset_request} throws it away.
    To get the full URL including query, use C{str(request)}.
    """

    @staticmethod
    def from_url(url: str, method: str = "GET") -> "Request":
        """Creates a L{Request} from a URL."""
        request = Request(method=method)
        request.set_uri(url)
        return request

    def __init__(
        self,
        page_url: str = "/",
        query: Iterable[tuple[str, str]] = (),
        method: str = "GET",
    ):
        """
        Initializes a request object.

        @param page_url:
            URL without the query. This is usually just a path,
            but scheme and host are accepted as well.
        @param query:
            C{(key, value)*}
            The query part of the URL, as a sequence of key-value pairs.
        @param method:
            HTTP method, such as C{GET} or C{POST}.
        """

        self.page_url = page_url
        """URL without the query."""

        self.query = list(query)
        """The query part of the URL, as a list of key-value pairs."""

        self.method = method.upper()
        """HTTP method, in upper case."""

        self.post: list[tuple[str, str]] = []
        """Form fields sent in the request body."""

        self.headers = Headers()
        """Request headers."""

        self.cookies: dict[str, str] = {}
        """Cookies sent along with the request."""

        self.content: bytes | None = None
        """
        Raw request body.

        If this is C{None}, the body is built from L{post}.
        """

    @property
    def path(self) -> str:
        """The path component of L{page_url}."""
        return urlsplit(self.page_url).path or "/"

    @property
    def query_string(self) -> str:
        """L{query} in C{application/x-www-form-urlencoded} format."""
        return "&".join(
            f"{quote_plus(key)}={quote_plus(value)}" for key, value in self.query
        )

    def set_uri(self, url: str) -> None:
        """Point this request at the given URL, replacing the current query."""
        scheme, host, path, query_str, fragment_ = urlsplit(url)
        query = parse_query(query_str)
        self.page_url = urlunsplit((scheme, host, path or "/", "", ""))
        self.query = query

    def clear_query(self) -> "Request":
        """Remove all query arguments."""
        self.query = []
        return self

    def clear_post(self) -> "Request":
        """Remove all form fields."""
        self.post = []
        return self

    def is_xml_http_request(self) -> bool:
        """Was this request flagged as made by a script?"""
        return self.headers.first("X-Requested-With") == "XMLHttpRequest"

    def body(self) -> bytes:
        """Return the request body that will be sent to the application."""
        if self.content is not None:
            return self.content
        if self.post:
            return urlencode(self.post).encode("ascii")
        return b""

    def __str__(self) -> str:
        if self.query:
            return self.page_url + "?" + self.query_string
        else:
            return self.page_url
