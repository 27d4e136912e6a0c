"""
Unit tests for `mvctest.assertions`.
"""

import re

from pytest import mark, raises

from mvctest.assertions import (
    HeaderCheck,
    QueryCheck,
    RedirectCheck,
    check_header,
    check_query,
    check_redirect,
    check_value,
)
from mvctest.query import MatchResult, QueryMode
from mvctest.response import Headers


def matches(*texts):
    """Return a result as if the given text nodes were selected."""
    return MatchResult("div.item", QueryMode.CSS, texts)


@mark.parametrize("check", [check for check in QueryCheck if check.inspects_content])
def test_content_checks_need_a_match(check):
    """Without matches, every content check fails on existence."""
    outcome = check_query(matches(), check, "anything")
    assert not outcome.passed
    assert outcome.failure == "Failed asserting node DENOTED BY div.item EXISTS"


def test_exists():
    assert check_query(matches("x"), QueryCheck.EXISTS).passed
    assert not check_query(matches(), QueryCheck.EXISTS).passed
    assert check_query(matches(), QueryCheck.NOT_EXISTS).passed
    outcome = check_query(matches("x"), QueryCheck.NOT_EXISTS)
    assert outcome.failure == "Failed asserting node DENOTED BY div.item DOES NOT EXIST"


def test_count_exact():
    """Count checks compare against the exact number of matches."""
    result = matches("a", "b")
    assert check_query(result, QueryCheck.COUNT, 2).passed
    outcome = check_query(result, QueryCheck.COUNT, 3)
    assert outcome.expected == 3
    assert outcome.actual == 2
    assert outcome.failure == (
        "Failed asserting node DENOTED BY div.item OCCURS EXACTLY 3 times, "
        "actually occurs 2 times"
    )
    assert check_query(result, QueryCheck.NOT_COUNT, 3).passed
    assert not check_query(result, QueryCheck.NOT_COUNT, 2).passed


@mark.parametrize("limit", range(5))
def test_count_bounds(limit):
    """Minimum and maximum checks are monotonic in the limit."""
    result = matches("a", "b")
    assert check_query(result, QueryCheck.COUNT_MIN, limit).passed == (limit <= 2)
    assert check_query(result, QueryCheck.COUNT_MAX, limit).passed == (limit >= 2)


def test_count_min_message():
    outcome = check_query(matches("a"), QueryCheck.COUNT_MIN, 4)
    assert outcome.failure == (
        "Failed asserting node DENOTED BY div.item OCCURS AT LEAST 4 times, "
        "actually occurs 1 times"
    )


def test_contains_is_exact():
    """Content containment compares the full text of a node."""
    result = matches("foobar", "baz")
    assert check_query(result, QueryCheck.CONTAINS, "foobar").passed
    outcome = check_query(result, QueryCheck.CONTAINS, "foo")
    assert outcome.failure == (
        'Failed asserting node denoted by div.item CONTAINS content "foo", '
        "Contents: [foobar,baz]"
    )
    assert check_query(result, QueryCheck.NOT_CONTAINS, "foo").passed
    assert not check_query(result, QueryCheck.NOT_CONTAINS, "baz").passed


def test_regex_searches():
    """Regular expressions may match anywhere in the text."""
    result = matches("foobar")
    assert check_query(result, QueryCheck.REGEX, "ba.").passed
    assert check_query(result, QueryCheck.REGEX, re.compile("^FOO", re.I)).passed
    outcome = check_query(result, QueryCheck.REGEX, "^bar")
    assert outcome.failure == (
        'Failed asserting node denoted by div.item CONTAINS content MATCHING "^bar", '
        'actual content is "foobar"'
    )


def test_not_regex_checks_every_node():
    """A negative regex check fails if any node matches."""
    result = matches("alpha", "beta")
    assert check_query(result, QueryCheck.NOT_REGEX, "gamma").passed
    outcome = check_query(result, QueryCheck.NOT_REGEX, "^b")
    assert outcome.failure == (
        'Failed asserting node DENOTED BY div.item DOES NOT CONTAIN content MATCHING "^b"'
    )


def test_malformed_pattern():
    with raises(re.error):
        check_query(matches("x"), QueryCheck.REGEX, "(")


HEADERS = Headers(
    [
        ("Content-Type", "text/html; charset=utf-8"),
        ("Set-Cookie", "a=1"),
        ("Set-Cookie", "b=2"),
        ("X-Empty", ""),
    ]
)


def header(name, check, expected=None):
    return check_header(name, HEADERS.get(name), check, expected)


def test_header_exists():
    assert header("content-type", HeaderCheck.EXISTS).passed
    assert header("X-Empty", HeaderCheck.EXISTS).passed
    assert header("Location", HeaderCheck.NOT_EXISTS).passed
    assert header("Location", HeaderCheck.EXISTS).failure == (
        'Failed asserting response header "Location" found'
    )
    assert header("X-Empty", HeaderCheck.NOT_EXISTS).failure == (
        'Failed asserting response header "X-Empty" WAS NOT found'
    )


@mark.parametrize("check", (HeaderCheck.CONTAINS, HeaderCheck.NOT_CONTAINS,
                            HeaderCheck.REGEX, HeaderCheck.NOT_REGEX))
def test_header_missing(check):
    """Value checks require the header to exist, negative ones included."""
    outcome = header("Location", check, "x")
    assert outcome.failure == (
        "Failed asserting response header, header \"Location\" doesn't exist"
    )


def test_header_contains():
    assert header("Content-Type", HeaderCheck.CONTAINS, "text/html; charset=utf-8").passed
    outcome = header("Content-Type", HeaderCheck.CONTAINS, "text/html")
    assert outcome.failure == (
        'Failed asserting response header "Content-Type" exists and contains '
        '"text/html", actual content is "text/html; charset=utf-8"'
    )
    assert header("Content-Type", HeaderCheck.NOT_CONTAINS, "text/html").passed


def test_header_repeated():
    """Any of the values of a repeated header can satisfy a check."""
    assert header("Set-Cookie", HeaderCheck.CONTAINS, "b=2").passed
    assert not header("Set-Cookie", HeaderCheck.NOT_CONTAINS, "a=1").passed
    assert header("Set-Cookie", HeaderCheck.REGEX, r"^b=\d$").passed
    assert not header("Set-Cookie", HeaderCheck.NOT_REGEX, "=").passed


def test_header_regex():
    assert header("Content-Type", HeaderCheck.REGEX, "charset=").passed
    outcome = header("Content-Type", HeaderCheck.NOT_REGEX, "html")
    assert outcome.failure == (
        'Failed asserting response header "Content-Type" DOES NOT MATCH regex "html"'
    )


def test_redirect():
    assert check_redirect("/home", RedirectCheck.REDIRECT).passed
    assert check_redirect(None, RedirectCheck.NOT_REDIRECT).passed
    assert check_redirect(None, RedirectCheck.REDIRECT).failure == (
        "Failed asserting response is a redirect"
    )
    assert check_redirect("/home", RedirectCheck.NOT_REDIRECT).failure == (
        'Failed asserting response is NOT a redirect, actual redirection is "/home"'
    )


def test_redirect_to():
    assert check_redirect("/home", RedirectCheck.TO, "/home").passed
    outcome = check_redirect("/login", RedirectCheck.TO, "/home")
    assert outcome.failure == (
        'Failed asserting response redirects to "/home", '
        'actual redirection is "/login"'
    )
    assert check_redirect("/login", RedirectCheck.NOT_TO, "/home").passed


@mark.parametrize("check", (RedirectCheck.TO, RedirectCheck.NOT_TO,
                            RedirectCheck.REGEX, RedirectCheck.NOT_REGEX,
                            RedirectCheck.ROUTE))
def test_redirect_required(check):
    """These checks fail when there is no redirect at all."""
    outcome = check_redirect(None, check, "/home")
    assert outcome.failure == "Failed asserting response is a redirect"


def test_redirect_regex():
    assert check_redirect("/user/42", RedirectCheck.REGEX, r"/user/\d+").passed
    assert check_redirect("/user/42", RedirectCheck.NOT_REGEX, "/admin").passed
    outcome = check_redirect("/user/42", RedirectCheck.NOT_REGEX, "user")
    assert outcome.failure == (
        'Failed asserting response DOES NOT redirect to URL MATCHING "user"'
    )


def test_redirect_route():
    assert check_redirect("/home", RedirectCheck.ROUTE, "home", "home").passed
    outcome = check_redirect("/home", RedirectCheck.ROUTE, "login", "home")
    assert outcome.failure == (
        'Failed asserting response redirects to route "login", actual route is "home"'
    )
    assert check_redirect(None, RedirectCheck.NOT_ROUTE, "home").passed
    assert check_redirect("/x", RedirectCheck.NOT_ROUTE, "home", None).passed
    assert not check_redirect("/home", RedirectCheck.NOT_ROUTE, "home", "home").passed


def test_check_value():
    assert check_value("response code", 200, 200).passed
    assert check_value("response code", 200, 404).failure == (
        'Failed asserting response code "200", actual response code is "404"'
    )
    assert check_value("action name", "index", "view", negate=True).passed
    assert check_value("action name", "index", "index", negate=True).failure == (
        'Failed asserting action name was NOT "index"'
    )
