# SPDX-License-Identifier: BSD-3-Clause

"""
Integration with pytest.

This module is registered as a pytest plugin when the package is
installed. It adds these options:

C{--mvctest-trace-error} / C{--mvctest-no-trace-error}
    Re-raise (or capture) exceptions from the application under test.
    Overrides the C{mvctest_trace_error} ini option.

C{mvctest_trace_error} (ini)
    Default for the above; overrides C{MVCTEST_TRACE_ERROR}.

C{mvctest_server_name} (ini)
    Host name that requests are sent to; overrides C{MVCTEST_SERVER_NAME}.

Test cases derived from L{ControllerTestCase} get the resulting
L{Settings} and a shared L{Scribe}; the number of assertions performed
is printed at the end of the run.
"""

from __future__ import annotations

from logging import getLogger

import pytest

from mvctest.config import Settings, parse_bool
from mvctest.report import Scribe
from mvctest.testcase import ControllerTestCase

_LOG = getLogger(__name__)

SETTINGS_KEY = pytest.StashKey[Settings]()
SCRIBE_KEY = pytest.StashKey[Scribe]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("mvctest", "web application functional tests")
    group.addoption(
        "--mvctest-trace-error",
        action="store_true",
        dest="mvctest_trace_error",
        default=None,
        help="re-raise exceptions from the application under test",
    )
    group.addoption(
        "--mvctest-no-trace-error",
        action="store_false",
        dest="mvctest_trace_error",
        help="capture exceptions from the application under test",
    )
    parser.addini(
        "mvctest_trace_error",
        "re-raise exceptions from the application under test (true/false)",
        default="",
    )
    parser.addini(
        "mvctest_server_name",
        "host name that requests to the application under test are sent to",
        default="",
    )


def settings_from_config(config: pytest.Config) -> Settings:
    """
    Combine environment, ini options and command line flags.

    @raise ValueError:
        If the C{mvctest_trace_error} ini option is not a boolean.
    """
    settings = Settings.from_env()
    trace_error = str(config.getini("mvctest_trace_error"))
    if trace_error:
        settings.trace_error = parse_bool(trace_error)
    server_name = str(config.getini("mvctest_server_name"))
    if server_name:
        settings.server_name = server_name
    option = config.getoption("mvctest_trace_error")
    if option is not None:
        settings.trace_error = option
    return settings


def pytest_configure(config: pytest.Config) -> None:
    try:
        settings = settings_from_config(config)
    except ValueError as ex:
        raise pytest.UsageError(f"mvctest_trace_error: {ex}") from ex
    _LOG.debug("Harness settings: %r", settings)
    config.stash[SETTINGS_KEY] = settings
    config.stash[SCRIBE_KEY] = Scribe()


@pytest.fixture(autouse=True)
def _mvctest_harness(request: pytest.FixtureRequest) -> None:
    """Hand the run's settings and scribe to harness test cases."""
    instance = request.instance
    if isinstance(instance, ControllerTestCase):
        stash = request.config.stash
        if instance.settings is None:
            instance.settings = stash[SETTINGS_KEY]
        instance.scribe = stash[SCRIBE_KEY]


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter, config: pytest.Config
) -> None:
    scribe = config.stash.get(SCRIBE_KEY, None)
    if scribe is None or len(scribe) == 0:
        return
    terminalreporter.write_sep("-", "mvctest")
    terminalreporter.write_line(scribe.summary())
