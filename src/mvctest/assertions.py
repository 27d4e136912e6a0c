# SPDX-License-Identifier: BSD-3-Clause

"""
Predicates behind the test case assertions.

Each C{check_*} function compares an observed value (a query result,
a header, a redirect location, ...) with an expectation and returns an
L{AssertionOutcome}. The functions never raise on a mismatch; turning
a failed outcome into an L{ExpectationFailed} exception is left to
the test case, which also records every outcome in its report.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Union

from mvctest.query import MatchResult
from mvctest.response import HeaderLookup, header_values

RegexT = Union[str, "re.Pattern[str]"]


class QueryCheck(Enum):
    """The predicates that can be evaluated on a L{MatchResult}."""

    EXISTS = "exists"
    NOT_EXISTS = "not-exists"
    COUNT = "count-equals"
    NOT_COUNT = "count-not-equals"
    COUNT_MIN = "count-at-least"
    COUNT_MAX = "count-at-most"
    CONTAINS = "content-contains"
    NOT_CONTAINS = "content-not-contains"
    REGEX = "content-matches"
    NOT_REGEX = "content-not-matches"

    @property
    def inspects_content(self) -> bool:
        """Does this check look at node text, rather than just the count?"""
        return self in _CONTENT_CHECKS


_CONTENT_CHECKS = frozenset(
    (QueryCheck.CONTAINS, QueryCheck.NOT_CONTAINS, QueryCheck.REGEX, QueryCheck.NOT_REGEX)
)


class HeaderCheck(Enum):
    """The predicates that can be evaluated on a response header."""

    EXISTS = "header-exists"
    NOT_EXISTS = "header-not-exists"
    CONTAINS = "header-contains"
    NOT_CONTAINS = "header-not-contains"
    REGEX = "header-matches"
    NOT_REGEX = "header-not-matches"


class RedirectCheck(Enum):
    """The predicates that can be evaluated on a redirect location."""

    REDIRECT = "redirect"
    NOT_REDIRECT = "not-redirect"
    TO = "redirect-to"
    NOT_TO = "not-redirect-to"
    REGEX = "redirect-matches"
    NOT_REGEX = "not-redirect-matches"
    ROUTE = "redirect-to-route"
    NOT_ROUTE = "not-redirect-to-route"


class AssertionOutcome:
    """
    The result of evaluating one assertion.

    Outcomes feed the failure diagnostics and the assertion reports.
    """

    def __init__(
        self,
        subject: str,
        check: str,
        expected: Any = None,
        actual: Any = None,
        failure: str | None = None,
    ):
        self.subject = subject
        """What was checked: a selector, header name, etc."""

        self.check = check
        """Name of the predicate that was evaluated."""

        self.expected = expected
        """Expected value: a count, string or pattern; C{None} if not applicable."""

        self.actual = actual
        """Observed value: a count, text values, header value, etc."""

        self.failure = failure
        """Diagnostic message, or C{None} if the assertion passed."""

    @property
    def passed(self) -> bool:
        """C{True} iff the assertion holds."""
        return self.failure is None

    def __repr__(self) -> str:
        verdict = "pass" if self.passed else "fail"
        return f"<AssertionOutcome {self.check} {self.subject!r}: {verdict}>"


class ExpectationFailed(AssertionError):
    """
    An assertion did not hold.

    This is the C{failureException} of the test case classes.
    """

    def __init__(self, message: str, outcome: AssertionOutcome | None = None):
        super().__init__(message)

        self.outcome = outcome
        """The outcome that caused this failure, if any."""


def pattern_text(pattern: RegexT) -> str:
    """Return the source of a pattern, for use in messages."""
    return pattern if isinstance(pattern, str) else pattern.pattern


def search(pattern: RegexT, text: str) -> bool:
    """
    Does C{pattern} match anywhere in C{text}?

    @raise re.error:
        If the pattern is malformed.
    """
    return re.search(pattern, text) is not None


def check_query(
    result: MatchResult, check: QueryCheck, expected: Any = None
) -> AssertionOutcome:
    """
    Evaluate a query predicate.

    Checks that inspect node content first require at least one match;
    if nothing matched, they fail with the same diagnostic as
    L{QueryCheck.EXISTS}, regardless of the expected content.

    @param result:
        The nodes selected by the query.
    @param check:
        The predicate to evaluate.
    @param expected:
        A count for the count checks, a string for the contains checks,
        a pattern for the regex checks; ignored by the existence checks.
    """

    path = result.selector
    count = len(result)

    def outcome(actual: Any, failure: str | None) -> AssertionOutcome:
        return AssertionOutcome(path, check.value, expected, actual, failure)

    if check.inspects_content and count == 0:
        return outcome(count, f"Failed asserting node DENOTED BY {path} EXISTS")

    if check is QueryCheck.EXISTS:
        failure = None if count > 0 else f"Failed asserting node DENOTED BY {path} EXISTS"
        return outcome(count, failure)

    if check is QueryCheck.NOT_EXISTS:
        failure = (
            None
            if count == 0
            else f"Failed asserting node DENOTED BY {path} DOES NOT EXIST"
        )
        return outcome(count, failure)

    if check is QueryCheck.COUNT:
        if count == expected:
            return outcome(count, None)
        return outcome(
            count,
            f"Failed asserting node DENOTED BY {path} OCCURS EXACTLY {expected:d} "
            f"times, actually occurs {count:d} times",
        )

    if check is QueryCheck.NOT_COUNT:
        if count != expected:
            return outcome(count, None)
        return outcome(
            count,
            f"Failed asserting node DENOTED BY {path} DOES NOT OCCUR EXACTLY "
            f"{expected:d} times",
        )

    if check is QueryCheck.COUNT_MIN:
        if count >= expected:
            return outcome(count, None)
        return outcome(
            count,
            f"Failed asserting node DENOTED BY {path} OCCURS AT LEAST {expected:d} "
            f"times, actually occurs {count:d} times",
        )

    if check is QueryCheck.COUNT_MAX:
        if count <= expected:
            return outcome(count, None)
        return outcome(
            count,
            f"Failed asserting node DENOTED BY {path} OCCURS AT MOST {expected:d} "
            f"times, actually occurs {count:d} times",
        )

    texts = result.texts

    if check is QueryCheck.CONTAINS:
        # Exact equality of the node text, not a substring test.
        if expected in texts:
            return outcome(texts, None)
        return outcome(
            texts,
            f'Failed asserting node denoted by {path} CONTAINS content "{expected}", '
            f"Contents: [{','.join(texts)}]",
        )

    if check is QueryCheck.NOT_CONTAINS:
        if expected not in texts:
            return outcome(texts, None)
        return outcome(
            texts,
            f"Failed asserting node DENOTED BY {path} DOES NOT CONTAIN "
            f'content "{expected}"',
        )

    if check is QueryCheck.REGEX:
        if any(search(expected, text) for text in texts):
            return outcome(texts, None)
        return outcome(
            texts,
            f"Failed asserting node denoted by {path} CONTAINS content MATCHING "
            f'"{pattern_text(expected)}", actual content is "{"".join(texts)}"',
        )

    if check is QueryCheck.NOT_REGEX:
        if not any(search(expected, text) for text in texts):
            return outcome(texts, None)
        return outcome(
            texts,
            f"Failed asserting node DENOTED BY {path} DOES NOT CONTAIN content "
            f'MATCHING "{pattern_text(expected)}"',
        )

    raise ValueError(check)


def check_header(
    name: str, lookup: HeaderLookup, check: HeaderCheck, expected: RegexT | None = None
) -> AssertionOutcome:
    """
    Evaluate a response header predicate.

    When a header occurs multiple times, the positive checks pass if
    any of its values fits, the negative checks pass only if none does.
    All checks except the existence checks fail when the header is absent.

    @param name:
        The header name, for use in messages.
    @param lookup:
        The result of looking up the header; see L{Headers.get}.
    @param check:
        The predicate to evaluate.
    @param expected:
        Exact value for the contains checks, pattern for the regex checks.
    """

    values = [header.value for header in header_values(lookup)]

    def outcome(failure: str | None) -> AssertionOutcome:
        return AssertionOutcome(name, check.value, expected, values, failure)

    if check is HeaderCheck.EXISTS:
        return outcome(
            None
            if lookup is not None
            else f'Failed asserting response header "{name}" found'
        )

    if check is HeaderCheck.NOT_EXISTS:
        return outcome(
            None
            if lookup is None
            else f'Failed asserting response header "{name}" WAS NOT found'
        )

    if lookup is None:
        return outcome(
            f"Failed asserting response header, header \"{name}\" doesn't exist"
        )

    actual = ", ".join(values)

    if check is HeaderCheck.CONTAINS:
        if expected in values:
            return outcome(None)
        return outcome(
            f'Failed asserting response header "{name}" exists and contains '
            f'"{expected}", actual content is "{actual}"'
        )

    if check is HeaderCheck.NOT_CONTAINS:
        if expected not in values:
            return outcome(None)
        return outcome(
            f'Failed asserting response header "{name}" DOES NOT CONTAIN "{expected}"'
        )

    assert expected is not None
    if check is HeaderCheck.REGEX:
        if any(search(expected, value) for value in values):
            return outcome(None)
        return outcome(
            f'Failed asserting response header "{name}" exists and matches regex '
            f'"{pattern_text(expected)}", actual content is "{actual}"'
        )

    if check is HeaderCheck.NOT_REGEX:
        if not any(search(expected, value) for value in values):
            return outcome(None)
        return outcome(
            f'Failed asserting response header "{name}" DOES NOT MATCH regex '
            f'"{pattern_text(expected)}"'
        )

    raise ValueError(check)


def check_redirect(
    location: str | None,
    check: RedirectCheck,
    expected: RegexT | None = None,
    route: str | None = None,
) -> AssertionOutcome:
    """
    Evaluate a redirect predicate.

    @param location:
        The value of the C{Location} header, or C{None} if the response
        is not a redirect.
    @param check:
        The predicate to evaluate.
    @param expected:
        URL, pattern or route name, depending on C{check}.
    @param route:
        For the route checks: the name of the route that C{location}
        resolves to, or C{None} if it resolves to no route.
    """

    def outcome(failure: str | None) -> AssertionOutcome:
        actual = route if check in (RedirectCheck.ROUTE, RedirectCheck.NOT_ROUTE) else location
        return AssertionOutcome("Location", check.value, expected, actual, failure)

    if check is RedirectCheck.REDIRECT:
        return outcome(
            None if location is not None else "Failed asserting response is a redirect"
        )

    if check is RedirectCheck.NOT_REDIRECT:
        return outcome(
            None
            if location is None
            else "Failed asserting response is NOT a redirect, "
            f'actual redirection is "{location}"'
        )

    if check is RedirectCheck.NOT_ROUTE:
        # Passes for any response that is not a redirect to the route,
        # including responses that are no redirect at all.
        if location is None or route != expected:
            return outcome(None)
        return outcome(
            f'Failed asserting response DOES NOT redirect to route "{expected}"'
        )

    if location is None:
        return outcome("Failed asserting response is a redirect")

    if check is RedirectCheck.TO:
        if location == expected:
            return outcome(None)
        return outcome(
            f'Failed asserting response redirects to "{expected}", '
            f'actual redirection is "{location}"'
        )

    if check is RedirectCheck.NOT_TO:
        if location != expected:
            return outcome(None)
        return outcome(f'Failed asserting response DOES NOT redirect to "{expected}"')

    if check is RedirectCheck.ROUTE:
        if route is not None and route == expected:
            return outcome(None)
        return outcome(
            f'Failed asserting response redirects to route "{expected}", '
            f'actual route is "{route or ""}"'
        )

    assert expected is not None
    if check is RedirectCheck.REGEX:
        if search(expected, location):
            return outcome(None)
        return outcome(
            "Failed asserting response redirects to URL MATCHING "
            f'"{pattern_text(expected)}", actual redirection is "{location}"'
        )

    if check is RedirectCheck.NOT_REGEX:
        if not search(expected, location):
            return outcome(None)
        return outcome(
            "Failed asserting response DOES NOT redirect to URL MATCHING "
            f'"{pattern_text(expected)}"'
        )

    raise ValueError(check)


def check_value(
    what: str, expected: Any, actual: Any, negate: bool = False
) -> AssertionOutcome:
    """
    Evaluate a plain equality predicate.

    Used for route identity, status codes and reason phrases.

    @param what:
        Description of the value, such as C{"module name"}.
    @param negate:
        If C{True}, the assertion holds when the values differ.
    """

    check = f"{what.replace(' ', '-')}-{'differs' if negate else 'equals'}"
    if negate:
        failure = (
            None
            if actual != expected
            else f'Failed asserting {what} was NOT "{expected}"'
        )
    else:
        failure = (
            None
            if actual == expected
            else f'Failed asserting {what} "{expected}", actual {what} is "{actual}"'
        )
    return AssertionOutcome(what, check, expected, actual, failure)
