"""
Helpers shared by the test modules: a small WSGI application to dispatch
requests to and a test case class that uses it.
"""

import logging
from urllib.parse import parse_qsl

from mvctest.application import ROUTE_MATCH_KEY, RouteMatch, WSGIApplication
from mvctest.testcase import HttpControllerTestCase


class _NoLogHandler(logging.Handler):
    """Log handler that asserts if anything is logged."""

    LOGGING_FORMAT = "%(levelname)s: %(message)s"

    def __init__(self, logger):
        super().__init__()
        self.setFormatter(logging.Formatter(self.LOGGING_FORMAT))
        self.logger = logger

    def __enter__(self):
        self.logger.addHandler(self)

    def __exit__(self, exc_type, exc_value, traceback):
        self.logger.removeHandler(self)

    def emit(self, record):
        message = self.format(record)
        assert False, f"Unexpected logging: {message}"


def no_log(logger):
    """Return a context manager that asserts if anything is emitted
    on the given logger.
    """
    return _NoLogHandler(logger)


ROUTES = {
    "/": RouteMatch("home", "application", "index", "index"),
    "/items": RouteMatch("items", "catalog", "item", "list"),
    "/login": RouteMatch("login", "user", "auth", "login"),
    "/logout": RouteMatch("logout", "user", "auth", "logout"),
    "/headers": RouteMatch("headers", "application", "debug", "headers"),
    "/feed": RouteMatch("feed", "catalog", "feed", "atom"),
    "/echo": RouteMatch("echo", "application", "debug", "echo"),
    "/fail": RouteMatch("fail", "application", "debug", "fail"),
}


def match_path(url):
    """Router for the demo application: resolve a URL to a route."""
    path = url.split("?", 1)[0]
    return ROUTES.get(path)


ITEMS_HTML = """<!DOCTYPE html>
<html><head><title>Items</title></head>
<body>
<h1 id="title">Items</h1>
<ul class="items"><li>a</li><li>b</li></ul>
<p class="note">Showing <b>2</b> items</p>
</body></html>
"""

FEED_XML = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>News</title>
  <entry><title>First</title></entry>
  <entry><title>Second</title></entry>
</feed>
"""

HTML_TYPE = ("Content-Type", "text/html; charset=utf-8")


def demo_app(environ, start_response):
    """A WSGI application with a handful of pages to test against."""
    path = environ["PATH_INFO"]
    route_match = ROUTES.get(path)
    if route_match is not None:
        environ[ROUTE_MATCH_KEY] = route_match

    if path == "/":
        start_response("200 OK", [HTML_TYPE])
        return [b"<html><body><p>Welcome</p></body></html>"]
    if path == "/items":
        start_response("200 OK", [HTML_TYPE])
        return [ITEMS_HTML.encode("utf-8")]
    if path == "/login":
        start_response("200 OK", [HTML_TYPE])
        return [b'<form method="post"><input name="user"/></form>']
    if path == "/logout":
        start_response("302 Found", [("Location", "/login"), HTML_TYPE])
        return [b""]
    if path == "/headers":
        start_response(
            "299 Everything Fine",
            [HTML_TYPE, ("X-Tag", "red"), ("X-Tag", "green"), ("X-Empty", "")],
        )
        return [b"<p>headers</p>"]
    if path == "/feed":
        start_response("200 OK", [("Content-Type", "application/atom+xml")])
        return [FEED_XML.encode("utf-8")]
    if path == "/echo":
        length = int(environ.get("CONTENT_LENGTH") or 0)
        form = parse_qsl(environ["wsgi.input"].read(length).decode("ascii"))
        query = parse_qsl(environ["QUERY_STRING"], keep_blank_values=True)
        rows = [f'<li class="method">{environ["REQUEST_METHOD"]}</li>']
        rows += [f'<li class="query">{key}={value}</li>' for key, value in query]
        rows += [f'<li class="form">{key}={value}</li>' for key, value in form]
        if environ.get("HTTP_X_REQUESTED_WITH") == "XMLHttpRequest":
            rows.append('<li class="xhr">yes</li>')
        body = "<html><body><ul>" + "".join(rows) + "</ul></body></html>"
        start_response("200 OK", [HTML_TYPE])
        return [body.encode("utf-8")]
    if path == "/fail":
        raise RuntimeError("database is gone")

    start_response("404 Not Found", [("Content-Type", "text/plain")])
    return [b"no such page"]


class DemoTestCase(HttpControllerTestCase):
    """Test case that dispatches to L{demo_app}."""

    def create_application(self):
        return WSGIApplication(demo_app, self.get_settings(), router=match_path)
