# SPDX-License-Identifier: BSD-3-Clause

"""Keeps track of the assertions performed by test cases.

Every assertion made through a test case is recorded in that test's
L{AssertionReport}. Reports are L{logging.LoggerAdapter} implementations,
so passed assertions show up as debug records and failed ones as info
records, each tagged with the test's id.

L{Scribe} collects the reports of many tests, so a summary can be
printed at the end of a run.
"""

from __future__ import annotations

from logging import LoggerAdapter, getLogger
from typing import TYPE_CHECKING, Any, Iterator, MutableMapping, Tuple

from mvctest.assertions import AssertionOutcome

if TYPE_CHECKING:
    # pylint: disable=unsubscriptable-object
    LoggerBase = LoggerAdapter[Any]
else:
    LoggerBase = LoggerAdapter


_LOG = getLogger(__name__)


class AssertionReport(LoggerBase):
    """Counts and logs the assertions performed by one test."""

    def __init__(self, test_id: str):
        """Initialize a report for the test identified by C{test_id}."""
        super().__init__(_LOG, dict(test_id=test_id))

        self.test_id = test_id
        """Identifies the test that this report belongs to."""

        self.count = 0
        """Number of assertions performed."""

        self.failures = 0
        """Number of assertions that did not hold."""

    @property
    def ok(self) -> bool:  # pylint: disable=invalid-name
        """C{True} iff no assertion failed."""
        return self.failures == 0

    def record(self, outcome: AssertionOutcome) -> None:
        """Register one performed assertion."""
        self.count += 1
        if outcome.passed:
            self.debug("%s %r holds", outcome.check, outcome.subject)
        else:
            self.failures += 1
            self.info("%s", outcome.failure)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        """Process contextual information for a logged message.

        Our C{test_id} will be inserted into the log record and
        prefixed to the message.
        """

        extra = kwargs.get("extra")
        if extra is None:
            extra = dict(self.extra or {})
        else:
            extra.update(self.extra or {})
        kwargs["extra"] = extra

        return f"[{self.test_id}] {msg}", kwargs


class Scribe:
    """Collects assertion reports for multiple tests."""

    def __init__(self) -> None:
        self._reports: list[AssertionReport] = []

    def add_report(self, report: AssertionReport) -> None:
        """Add the report of a finished test."""
        self._reports.append(report)

    def __iter__(self) -> Iterator[AssertionReport]:
        return iter(self._reports)

    def __len__(self) -> int:
        return len(self._reports)

    @property
    def assertions(self) -> int:
        """Total number of assertions performed."""
        return sum(report.count for report in self._reports)

    @property
    def failures(self) -> int:
        """Total number of assertions that did not hold."""
        return sum(report.failures for report in self._reports)

    def summary(self) -> str:
        """Describe the collected reports in a single line."""
        return (
            f"{self.assertions:d} assertions in {len(self):d} tests, "
            f"{self.failures:d} failed"
        )
