# SPDX-License-Identifier: BSD-3-Clause

"""
HTTP message parts: headers and the L{Response} class.

A L{Response} is what the application under test produced for the last
dispatched request. Assertions read it through L{Headers.get} and
L{Response.get_content}; neither of those raises when something is
missing.
"""

from __future__ import annotations

from email.message import Message
from http import HTTPStatus
from logging import getLogger
from typing import Iterable, Iterator, Tuple, Union

from mvctest.decode import decode_body

_LOG = getLogger(__name__)


class Header:
    """A single header field: a name and its value."""

    def __init__(self, name: str, value: str):
        self.name = name
        """Field name, as it was given."""

        self.value = value
        """Field value."""

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Header):
            return (
                self.name.lower() == other.name.lower() and self.value == other.value
            )
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name.lower()) ^ hash(self.value)

    def __repr__(self) -> str:
        return f"Header({self.name!r}, {self.value!r})"

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"


HeaderLookup = Union[Header, Tuple[Header, ...], None]
"""
Result of L{Headers.get}: C{None} when absent, a L{Header} when the field
occurs once, or a tuple of headers when it occurs multiple times.
"""


class Headers:
    """
    An ordered collection of header fields.

    Field names are matched case-insensitively. A field name may occur
    more than once; the order in which fields were added is preserved.
    """

    def __init__(self, fields: Iterable[tuple[str, str]] = ()):
        self._fields: list[Header] = [Header(name, value) for name, value in fields]

    def add(self, name: str, value: str) -> "Headers":
        """Append a field, keeping existing fields with the same name."""
        self._fields.append(Header(name, value))
        return self

    def set(self, name: str, value: str) -> "Headers":
        """Replace all fields with the given name by a single one."""
        self.remove(name)
        return self.add(name, value)

    def remove(self, name: str) -> bool:
        """
        Remove all fields with the given name.

        @return: C{True} iff at least one field was removed.
        """
        key = name.lower()
        kept = [header for header in self._fields if header.name.lower() != key]
        removed = len(kept) != len(self._fields)
        self._fields = kept
        return removed

    def get_all(self, name: str) -> list[Header]:
        """Return all fields with the given name, in order."""
        key = name.lower()
        return [header for header in self._fields if header.name.lower() == key]

    def get(self, name: str) -> HeaderLookup:
        """
        Look up a field by name.

        @return:
            C{None} if the field is absent,
            the L{Header} if it occurs once,
            or a tuple of L{Header} objects if it occurs more than once.
        """
        found = self.get_all(name)
        if not found:
            return None
        elif len(found) == 1:
            return found[0]
        else:
            return tuple(found)

    def first(self, name: str) -> str | None:
        """Return the value of the first field with the given name, if any."""
        found = self.get_all(name)
        return found[0].value if found else None

    def has(self, name: str) -> bool:
        """Is there at least one field with the given name?"""
        return bool(self.get_all(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[Header]:
        return iter(tuple(self._fields))

    def __len__(self) -> int:
        return len(self._fields)

    def items(self) -> list[tuple[str, str]]:
        """Return all fields as C{(name, value)} pairs."""
        return [(header.name, header.value) for header in self._fields]

    def __repr__(self) -> str:
        return f"Headers({self.items()!r})"


def header_values(lookup: HeaderLookup) -> tuple[Header, ...]:
    """Flatten the result of L{Headers.get} to a tuple of headers."""
    if lookup is None:
        return ()
    elif isinstance(lookup, Header):
        return (lookup,)
    else:
        return lookup


class Response:
    """The response that the application under test produced."""

    def __init__(
        self,
        status_code: int = 200,
        headers: Iterable[tuple[str, str]] = (),
        body: bytes = b"",
        reason_phrase: str | None = None,
    ):
        self.status_code = status_code
        """HTTP status code."""

        self._reason_phrase = reason_phrase

        self.headers = Headers(headers)
        """Response headers."""

        self.body = body
        """Raw response body."""

    @property
    def reason_phrase(self) -> str:
        """
        The reason phrase sent with the status code.

        When the application did not provide one, the standard phrase
        for the status code is used.
        """
        if self._reason_phrase is not None:
            return self._reason_phrase
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return ""

    def set_status(self, status_code: int, reason_phrase: str | None = None) -> None:
        """Set the status code and optionally a non-standard reason phrase."""
        self.status_code = status_code
        self._reason_phrase = reason_phrase

    @property
    def content_type(self) -> str | None:
        """The media type from the C{Content-Type} header, in lower case."""
        header = self.headers.first("Content-Type")
        if header is None:
            return None
        msg = Message()
        msg["Content-Type"] = header
        return msg.get_content_type()

    @property
    def charset(self) -> str | None:
        """The C{charset} parameter of the C{Content-Type} header, if any."""
        header = self.headers.first("Content-Type")
        if header is None:
            return None
        msg = Message()
        msg["Content-Type"] = header
        return msg.get_content_charset()

    def is_redirect(self) -> bool:
        """Does this response carry a C{Location} header?"""
        return self.headers.has("Location")

    def set_content(self, content: str | bytes) -> None:
        """
        Replace the body.

        Text is encoded using the charset from the C{Content-Type} header,
        or UTF-8 if there is none.
        """
        if isinstance(content, str):
            content = content.encode(self.charset or "utf-8")
        self.body = content

    def get_content(self) -> str:
        """
        Return the body as text.

        An empty body gives an empty string. Decoding never fails;
        see L{decode_body}.
        """
        return decode_body(self.body, self.charset, _LOG)

    def __repr__(self) -> str:
        return f"<Response {self.status_code:d} {self.reason_phrase}>"
