# SPDX-License-Identifier: BSD-3-Clause

"""
Harness configuration.

L{Settings} holds the knobs that influence how test cases talk to the
application under test. Defaults can be overridden from the environment
(L{Settings.from_env}) and, when running under pytest, from ini options
and command line flags (see L{mvctest.pytest_plugin}).
"""

from __future__ import annotations

import os
from logging import getLogger
from typing import Mapping

_LOG = getLogger(__name__)

ENV_PREFIX = "MVCTEST_"

_TRUE_WORDS = frozenset(("1", "true", "yes", "on"))
_FALSE_WORDS = frozenset(("0", "false", "no", "off", ""))


def parse_bool(value: str) -> bool:
    """
    Interpret a configuration string as a boolean.

    @raise ValueError:
        If the string is not one of the accepted spellings.
    """
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f'Not a boolean value: "{value}"')


class Settings:
    """Configuration for dispatching requests to the application under test."""

    def __init__(
        self,
        trace_error: bool = True,
        server_name: str = "localhost",
        server_port: str = "80",
        url_scheme: str = "http",
    ):
        self.trace_error = trace_error
        """
        If C{True}, an exception raised by the application while handling
        a request is re-raised from L{ControllerTestCase.dispatch}.
        If C{False}, it is stored and can be checked using
        L{ControllerTestCase.assertApplicationException}.
        """

        self.server_name = server_name
        """Host name that requests appear to be sent to."""

        self.server_port = server_port
        """Port that requests appear to be sent to."""

        self.url_scheme = url_scheme
        """URL scheme of the simulated requests: C{http} or C{https}."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Create settings from C{MVCTEST_*} environment variables.

        Variables that are not set leave the defaults in place.
        A malformed boolean is logged and ignored.
        """
        if environ is None:
            environ = os.environ
        settings = cls()
        value = environ.get(ENV_PREFIX + "TRACE_ERROR")
        if value is not None:
            try:
                settings.trace_error = parse_bool(value)
            except ValueError as ex:
                _LOG.warning("Ignoring %sTRACE_ERROR: %s", ENV_PREFIX, ex)
        for name in ("server_name", "server_port", "url_scheme"):
            value = environ.get(ENV_PREFIX + name.upper())
            if value:
                setattr(settings, name, value)
        return settings

    def __repr__(self) -> str:
        return (
            f"Settings(trace_error={self.trace_error!r}, "
            f"server_name={self.server_name!r}, "
            f"server_port={self.server_port!r}, "
            f"url_scheme={self.url_scheme!r})"
        )
