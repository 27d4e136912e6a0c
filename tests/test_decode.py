"""
Unit tests for `mvctest.decode`.
"""

from codecs import BOM_UTF8, BOM_UTF16_LE, lookup
from logging import INFO, WARNING, getLogger

from pytest import mark, raises

from mvctest.decode import decode_body, encoding_from_bom, standard_codec_name, try_decode

logger = getLogger(__name__)
logger.setLevel(INFO)


@mark.parametrize(
    "name", ("us-ascii", "iso-8859-1", "iso-8859-15", "shift_jis", "euc-jp", "koi8-r")
)
def test_standard_codec_name_round_trip(name):
    """Test standard name -> Python name -> standard name cycle."""
    assert standard_codec_name(lookup(name).name) == name


@mark.parametrize("name", ("cp437", "gibberish"))
def test_standard_codec_name_unknown(name):
    """Test whether an unlisted codec name is returned as-is."""
    assert standard_codec_name(name) == name


@mark.parametrize(
    "data, expected",
    (
        (BOM_UTF8 + b"<p/>", "utf-8"),
        (BOM_UTF16_LE + "<p/>".encode("utf-16-le"), "utf-16"),
        ("<p/>".encode("utf-32"), "utf-32"),
        (b"<p/>", None),
    ),
)
def test_encoding_from_bom(data, expected):
    """Test detection of byte order marks, including UTF-32 vs UTF-16."""
    assert encoding_from_bom(data) == expected


def test_try_decode_first():
    """Test whether the first possible encoding is used."""
    text, encoding = try_decode(b"Hello", ["ascii", "utf-8"])
    assert text == "Hello"
    assert encoding == "us-ascii"
    text, encoding = try_decode(b"Hello", ["utf-8", "ascii"])
    assert encoding == "utf-8"


def test_try_decode_skips_unknown():
    """Test whether unknown encoding names are skipped."""
    text, encoding = try_decode(b"caf\xc3\xa9", ["no-such-codec", "utf-8"])
    assert text == "caf\xe9"
    assert encoding == "utf-8"


def test_try_decode_no_valid_options():
    """Test handling of no usable encoding."""
    with raises(ValueError):
        try_decode(b"\xC0", ["utf-8"])
    with raises(ValueError):
        try_decode(b"Hello", ())


def test_decode_body_empty(caplog):
    """An empty body decodes to an empty string without logging."""
    with caplog.at_level(INFO, logger=__name__):
        assert decode_body(b"", "utf-8", logger) == ""
    assert not caplog.records


def test_decode_body_charset(caplog):
    """Test decoding with a charset that matches the body."""
    with caplog.at_level(INFO, logger=__name__):
        text = decode_body("na\xefve".encode("iso-8859-1"), "latin-1", logger)
    assert text == "na\xefve"
    assert not caplog.records


def test_decode_body_implicit_utf8(caplog):
    """Test whether UTF-8 is tried when the declared charset fails."""
    with caplog.at_level(INFO, logger=__name__):
        text = decode_body(b"smile \xf0\x9f\x98\x83", "ascii", logger)
    assert text == "smile \U0001f603"
    assert caplog.record_tuples == [
        (
            "test_decode",
            WARNING,
            'HTTP header specifies encoding "ascii", '
            'while actual encoding seems to be "utf-8"',
        )
    ]


def test_decode_body_unknown_charset(caplog):
    """Test handling of a charset that Python does not know."""
    with caplog.at_level(INFO, logger=__name__):
        text = decode_body(b"Hello", "x-klingon", logger)
    assert text == "Hello"
    assert caplog.record_tuples == [
        (
            "test_decode",
            WARNING,
            'HTTP header specifies encoding "x-klingon", which is unknown to Python',
        )
    ]


def test_decode_body_bom_stripped():
    """The byte order mark is not part of the text."""
    assert decode_body(BOM_UTF8 + b"<html/>", None, logger) == "<html/>"


def test_decode_body_undecodable(caplog):
    """Undecodable bytes are replaced instead of raising."""
    with caplog.at_level(INFO, logger=__name__):
        text = decode_body(b"cut-off smile \xf0\x9f\x98", "utf-8", logger)
    assert text.startswith("cut-off smile ")
    assert text.endswith("\ufffd")
    assert [record.levelno for record in caplog.records] == [WARNING]
