# SPDX-License-Identifier: BSD-3-Clause

"""
DOM queries on response bodies.

L{execute_query} is the single entry point: it takes a L{QueryTarget}
(document text plus XPath namespace bindings), a selector and a
L{QueryMode}, and returns a L{MatchResult} listing the matched nodes
in document order.

Parsing is done by U{lxml<https://lxml.de/>}; CSS selectors are
translated to XPath by U{cssselect<https://cssselect.readthedocs.io/>}.
"""

from __future__ import annotations

import re
from enum import Enum, auto
from logging import getLogger
from typing import Iterator, Mapping, Sequence, overload

from lxml import etree
from lxml.cssselect import CSSSelector

_LOG = getLogger(__name__)


class QueryMode(Enum):
    """The language a selector is written in."""

    CSS = auto()
    """CSS selector; namespace bindings are ignored."""

    XPATH = auto()
    """XPath expression; namespace bindings are applied."""


class DocumentType(Enum):
    """How a response body is parsed."""

    HTML = auto()
    XHTML = auto()
    XML = auto()


_RE_XML_DECL = re.compile(r'<\?xml([ \t\r\n\'"\w.\-=]*).*?\?>')
_RE_XHTML_DOCTYPE = re.compile(r"<!DOCTYPE\s+html\s+PUBLIC\s+[\"'][^\"']*XHTML", re.I)


def strip_xml_decl(text: str) -> str:
    """
    Strip the XML declaration from the start of the given text.

    @return: The given text without XML declaration,
             or the unmodified text if no XML declaration was found.
    """
    match = _RE_XML_DECL.match(text)
    return text if match is None else text[match.end() :]


def document_type(content: str) -> DocumentType:
    """Guess the type of a document from its first bytes."""
    content = content.lstrip()
    if content.startswith("<?xml"):
        return DocumentType.XHTML if "<html" in content else DocumentType.XML
    if _RE_XHTML_DOCTYPE.match(content):
        return DocumentType.XHTML
    return DocumentType.HTML


def parse_document(
    content: str, doctype: DocumentType | None = None
) -> etree._ElementTree | None:
    """
    Parse a response body.

    Parse problems do not raise: the parsers recover from errors
    as far as they can.

    @param content:
        Text to be parsed.
    @param doctype:
        Forces the document type; when C{None}, L{document_type}
        decides.
    @return:
        A document tree, or C{None} if the document is empty.
    """

    if not content.strip():
        return None
    if doctype is None:
        doctype = document_type(content)

    if doctype is DocumentType.HTML:
        parser: etree._FeedParser = etree.HTMLParser(recover=True)
    else:
        parser = etree.XMLParser(recover=True)

    # lxml does not accept encoding declarations when parsing strings.
    content = strip_xml_decl(content.lstrip())
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as ex:
        _LOG.debug("Failed to parse document as %s: %s", doctype.name, ex)
        return None
    return None if root is None else root.getroottree()


class QueryTarget:
    """
    Input of a query: a document and the XPath namespace bindings to use.

    Targets are created for a single query and not cached, since the
    response they were taken from may change between dispatches.
    """

    def __init__(self, content: str, namespaces: Mapping[str, str] | None = None):
        self.content = content
        """Document text."""

        self.namespaces = dict(namespaces or {})
        """Maps namespace prefixes to URIs, for XPath queries only."""


_STRING_VALUE = etree.XPath("string()")


def node_text(node: object) -> str:
    """
    Return the text value of a matched node.

    For elements this is the concatenation of all descendant text,
    for attributes and text nodes it is their string value.
    """
    if isinstance(node, etree._Element):  # pylint: disable=protected-access
        return str(_STRING_VALUE(node))
    return str(node)


class MatchedNode:
    """One node selected by a query."""

    __slots__ = ("node", "text")

    def __init__(self, node: object):
        self.node = node
        """The lxml element, or string result for attribute/text matches."""

        self.text = node_text(node)
        """The text value of the node."""

    def __repr__(self) -> str:
        return f"MatchedNode({self.text!r})"


class MatchResult(Sequence[MatchedNode]):
    """Nodes selected by a query, in document order."""

    def __init__(self, selector: str, mode: QueryMode, nodes: Sequence[object] = ()):
        self.selector = selector
        """The selector that was executed."""

        self.mode = mode
        """The language of L{selector}."""

        self._nodes = tuple(MatchedNode(node) for node in nodes)

    @property
    def texts(self) -> list[str]:
        """Text values of all matched nodes."""
        return [node.text for node in self._nodes]

    @overload
    def __getitem__(self, index: int) -> MatchedNode: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[MatchedNode]: ...

    def __getitem__(self, index: int | slice) -> MatchedNode | Sequence[MatchedNode]:
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[MatchedNode]:
        return iter(self._nodes)

    def __repr__(self) -> str:
        return f"<MatchResult {self.mode.name} {self.selector!r}: {len(self)} nodes>"


def _is_undefined_prefix(ex: etree.XPathEvalError) -> bool:
    return "Undefined namespace prefix" in str(ex)


def execute_query(target: QueryTarget, selector: str, mode: QueryMode) -> MatchResult:
    """
    Run a CSS or XPath query against a document.

    @param target:
        The document to query. Its namespace bindings are only used
        in XPath mode.
    @param selector:
        CSS selector or XPath expression, depending on C{mode}.
    @param mode:
        The language of C{selector}.
    @return:
        The matched nodes. An empty document matches nothing.
        An XPath expression using a prefix that has no binding
        matches nothing as well.
    @raise cssselect.SelectorSyntaxError:
        If a CSS selector is malformed.
    @raise lxml.etree.XPathError:
        If an XPath expression is malformed.
    @raise ValueError:
        If an XPath expression does not evaluate to a node set.
    """

    if mode is QueryMode.CSS:
        # Compile first, so malformed selectors are reported
        # even on an empty document.
        css = CSSSelector(selector, translator="html")
        # Namespace declarations would hide elements from selectors,
        # so CSS always sees the HTML parse of the document.
        tree = parse_document(target.content, DocumentType.HTML)
        nodes = [] if tree is None else css(tree.getroot())
    else:
        xpath = etree.XPath(selector, namespaces=target.namespaces)
        tree = parse_document(target.content)
        if tree is None:
            nodes = []
        else:
            try:
                result = xpath(tree)
            except etree.XPathEvalError as ex:
                if not _is_undefined_prefix(ex):
                    raise
                _LOG.debug('XPath "%s" uses an unbound prefix: %s', selector, ex)
                result = []
            if not isinstance(result, list):
                raise ValueError(
                    f'XPath expression "{selector}" evaluates to '
                    f"{result!r} instead of a node set"
                )
            nodes = result

    _LOG.debug('%s query "%s" matched %d nodes', mode.name, selector, len(nodes))
    return MatchResult(selector, mode, nodes)
