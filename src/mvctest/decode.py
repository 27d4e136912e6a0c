# SPDX-License-Identifier: BSD-3-Clause

"""
Text decode functions for response bodies.

An application under test hands us bytes; assertions work on text.
L{decode_body} turns the first into the second, using the clues that
the response offers and never giving up: a body that cannot be decoded
is still turned into text, with a warning logged.
"""

from __future__ import annotations

from codecs import (
    BOM_UTF8,
    BOM_UTF16_BE,
    BOM_UTF16_LE,
    BOM_UTF32_BE,
    BOM_UTF32_LE,
    CodecInfo,
    lookup as lookup_codec,
)
from logging import Logger, LoggerAdapter
from typing import Any, Iterable, Union

LoggerT = Union[Logger, "LoggerAdapter[Any]"]


def encoding_from_bom(data: bytes) -> str | None:
    """
    Look for a byte-order-marker at the start of the given C{bytes}.
    If found, return the encoding matching that BOM, otherwise return C{None}.
    """
    # The UTF-32 LE mark starts with the UTF-16 LE mark, so test it first.
    if data.startswith(BOM_UTF8):
        return "utf-8"
    elif data.startswith(BOM_UTF32_LE) or data.startswith(BOM_UTF32_BE):
        return "utf-32"
    elif data.startswith(BOM_UTF16_LE) or data.startswith(BOM_UTF16_BE):
        return "utf-16"
    else:
        return None


def standard_codec_name(name: str) -> str:
    """
    Map a Python codec name to the name registered with IANA.

    @param name:
        Text encoding name, in lower case.
    """
    if name.startswith("iso8859"):
        return "iso-8859" + name[7:]
    return {
        "ascii": "us-ascii",
        "euc_jp": "euc-jp",
        "euc_kr": "euc-kr",
        "iso2022_jp": "iso-2022-jp",
        "iso2022_kr": "iso-2022-kr",
    }.get(name, name)


def try_decode(data: bytes, encodings: Iterable[str]) -> tuple[str, str]:
    """
    Attempt to decode text using the given encodings in order.

    Unknown encoding names are skipped.

    @return: C{(text, encoding)}
        The decoded string and the standard name of the encoding
        that was used to decode it.
    @raise ValueError:
        If none of the encodings can decode the data.
    """

    codecs: dict[str, CodecInfo] = {}
    for encoding in encodings:
        try:
            codec = lookup_codec(encoding)
        except LookupError:
            continue
        codecs.setdefault(standard_codec_name(codec.name), codec)

    for name, codec in codecs.items():
        try:
            text, consumed = codec.decode(data, "strict")
        except UnicodeDecodeError:
            continue
        if consumed == len(data):
            return text, name
    raise ValueError("Unable to determine body encoding")


def decode_body(data: bytes, http_charset: str | None, logger: LoggerT) -> str:
    """
    Decode a response body.

    The byte order mark takes precedence over the charset in the
    C{Content-Type} header; UTF-8 is tried when neither is present
    or neither works.

    @param data:
        The raw response body.
    @param http_charset:
        The C{charset} parameter of the C{Content-Type} header, if any.
    @param logger:
        Disagreements between the declared and the actual encoding
        are logged here as warnings.
    @return:
        The body as text. Bytes that cannot be decoded are replaced
        by U+FFFD.
    """

    if not data:
        return ""

    bom_encoding = encoding_from_bom(data)
    options = [
        (encoding, source)
        for encoding, source in (
            (bom_encoding, "Byte Order Mark"),
            (http_charset, "HTTP header"),
        )
        if encoding is not None
    ]
    encodings = [encoding for encoding, source_ in options]
    encodings.append("utf-8")

    try:
        text, used_encoding = try_decode(data, encodings)
    except ValueError:
        logger.warning(
            "Response body could not be decoded as any of: %s", ", ".join(encodings)
        )
        return data.decode(bom_encoding or "utf-8", "replace")

    for encoding, source in options:
        try:
            codec = lookup_codec(encoding)
        except LookupError:
            logger.warning(
                '%s specifies encoding "%s", which is unknown to Python',
                source,
                encoding,
            )
            continue
        if standard_codec_name(codec.name) != used_encoding:
            logger.warning(
                '%s specifies encoding "%s", while actual encoding seems to be "%s"',
                source,
                encoding,
                used_encoding,
            )

    if bom_encoding is not None and text.startswith("\ufeff"):
        text = text[1:]
    return text
