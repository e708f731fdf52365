# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Event based view of an XML document, used by the parsing module.
lxml tokenizes the document and reports it to a parser target, which records it as a flat
sequence of start tag, end tag, text and end-of-document events.
"""

from __future__ import annotations

import enum
from collections import Counter
from typing import IO, Any, List, NamedTuple, Optional

import lxml.etree as ET
from typing_extensions import Self

from .errors import SvdNonUtf8Error, SvdSyntaxError

# Number of bytes fed to the XML parser at a time
_CHUNK_SIZE = 64 * 1024

# libxml2 error codes reported when the input cannot be decoded
_ENCODING_ERRORS = frozenset(
    {
        ET.ErrorTypes.ERR_INVALID_CHAR,
        ET.ErrorTypes.ERR_INVALID_ENCODING,
        ET.ErrorTypes.ERR_UNSUPPORTED_ENCODING,
    }
)


class EventKind(enum.Enum):
    START = enum.auto()
    END = enum.auto()
    TEXT = enum.auto()
    EOF = enum.auto()


class Event(NamedTuple):
    """A single event in the XML event stream."""

    kind: EventKind

    # Local tag name for START/END events.
    tag: Optional[str] = None

    # Character data for TEXT events.
    text: Optional[str] = None

    def __str__(self) -> str:
        if self.kind == EventKind.START:
            return f"<{self.tag}>"
        if self.kind == EventKind.END:
            return f"</{self.tag}>"
        if self.kind == EventKind.TEXT:
            return f"text {self.text!r}"
        return "end of document"


EOF = Event(EventKind.EOF)


class _EventCollector:
    """lxml parser target that records the events reported by the parser."""

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._text: List[str] = []

    def start(self, tag: str, attrib: Any) -> None:
        self._flush_text()
        self._events.append(Event(EventKind.START, tag=ET.QName(tag).localname))

    def end(self, tag: str) -> None:
        self._flush_text()
        self._events.append(Event(EventKind.END, tag=ET.QName(tag).localname))

    def data(self, data: str) -> None:
        # lxml may report a single text node in several pieces
        self._text.append(data)

    def close(self) -> List[Event]:
        self._flush_text()
        self._events.append(EOF)
        return self._events

    def _flush_text(self) -> None:
        if self._text:
            self._events.append(Event(EventKind.TEXT, text="".join(self._text)))
            self._text.clear()


class ElementReader:
    """
    Reader over the events of an XML document.
    Comments and processing instructions are not reported.
    The reader keeps track of the currently open elements, which gives context to error messages.
    """

    def __init__(self, events: List[Event]) -> None:
        self._events = events
        self._index = 0
        self._open: List[str] = []
        self._seen: List[Counter] = [Counter()]

    @classmethod
    def from_stream(cls, src: IO[bytes]) -> Self:
        """
        Tokenize an XML document read from a binary stream.

        :param src: Readable binary stream.

        :raises SvdNonUtf8Error: If the document cannot be decoded.
        :raises SvdSyntaxError: If the document is not well-formed XML.

        :return: Reader over the document events.
        """
        # Note: entities are not resolved and nothing is fetched from the network
        xml_parser = ET.XMLParser(
            target=_EventCollector(),
            remove_comments=True,
            remove_pis=True,
            resolve_entities=False,
            no_network=True,
        )

        try:
            while chunk := src.read(_CHUNK_SIZE):
                xml_parser.feed(chunk)
            events = xml_parser.close()
        except ET.XMLSyntaxError as e:
            if e.code in _ENCODING_ERRORS:
                raise SvdNonUtf8Error(f"Could not decode document: {e.msg}") from e
            raise SvdSyntaxError(f"Malformed XML: {e.msg}") from e

        return cls(events)

    def read_event(self) -> Event:
        """
        Get the next event in the document.
        Once the end of the document is reached, EOF is returned indefinitely.
        """
        if self._index >= len(self._events):
            return EOF

        event = self._events[self._index]
        self._index += 1

        if event.kind == EventKind.START:
            self._seen[-1][event.tag] += 1
            self._open.append(f"{event.tag}[{self._seen[-1][event.tag]}]")
            self._seen.append(Counter())
        elif event.kind == EventKind.END and self._open:
            self._open.pop()
            self._seen.pop()

        return event

    @property
    def path(self) -> str:
        """Path to the innermost open element, e.g. "device[1]/peripherals[1]/peripheral[3]"."""
        return "/".join(self._open)
