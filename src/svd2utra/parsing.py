# Copyright (c) 2022 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from time import perf_counter_ns
from typing import IO, Any, List, NoReturn, Optional, Union

import svd2utra

from ._bindings import (
    SCHEMA,
    Child,
    Descend,
    Node,
    NodeSpec,
    Policy,
    Scalar,
    Slots,
    Splice,
    to_int,
)
from ._reader import ElementReader, Event, EventKind
from .device import Description
from .errors import SvdParseError, SvdUnexpectedTagError


@dataclass(frozen=True)
class Options:
    """Options to configure the SVD parsing behavior."""

    # Width in bits of the unsigned integers used for addresses, offsets and other numeric values.
    # Values that do not fit cause a SvdIntParseError. The default matches a 64-bit host.
    pointer_width: int = 64


def parse(svd_path: Union[str, Path], options: Options = Options()) -> Description:
    """
    Parse a device described by a SVD file.

    :param svd_path: Path to the SVD file.
    :param options: Parsing options.

    :raises FileNotFoundError: If the SVD file does not exist.
    :raises SvdParseError: If an error occurred while parsing the SVD file.

    :return: Parsed `Description` of the SVD file.
    """
    svd_file = Path(svd_path)

    if not svd_file.is_file():
        raise FileNotFoundError(f"No such file: {svd_file.absolute()}")

    with open(svd_file, "rb") as f:
        return parse_stream(f, options)


def parse_stream(src: IO[bytes], options: Options = Options()) -> Description:
    """
    Parse a device described by a SVD document read from a binary stream.

    :param src: Readable binary stream containing the SVD document.
    :param options: Parsing options.

    :raises SvdParseError: If an error occurred while parsing the SVD document.

    :return: Parsed `Description` of the SVD document.
    """
    t_parse_start = perf_counter_ns()

    reader = ElementReader.from_stream(src)
    slots = _ModelBuilder(reader, options).parse_node(Node.DOCUMENT)
    description = Description(
        peripherals=tuple(slots["peripherals"]),
        memory_regions=tuple(slots["memory_regions"]),
    )

    t_parse = (perf_counter_ns() - t_parse_start) / 1_000_000
    svd2utra.log.debug(
        f"Parsed {len(description.peripherals)} peripherals and "
        f"{len(description.memory_regions)} memory regions in {t_parse:.2f} ms"
    )

    return description


class _ModelBuilder:
    """
    Recursive descent parser that builds the description from the XML events.
    Each node in the SCHEMA table is parsed by parse_node(), which dispatches the events it reads
    according to the node's table until the node's own end tag is found.
    """

    def __init__(self, reader: ElementReader, options: Options) -> None:
        self._reader = reader
        self._options = options

    def parse_node(self, node: Node) -> Any:
        """
        Parse a node whose start tag has just been read.

        :param node: Node to parse.

        :raises SvdParseError: If the events do not match the node, or a value is invalid.

        :return: The constructed value if the node has a builder, otherwise the collected slots.
        """
        spec = SCHEMA[node]
        slots: Slots = {name: [] for name in spec.lists}

        # Tags of the elements opened by Descend actions that have not been closed yet
        transparent: List[str] = []

        while True:
            event = self._reader.read_event()

            if event.kind == EventKind.START:
                assert event.tag is not None
                self._dispatch(spec, event.tag, slots, transparent)

            elif event.kind == EventKind.END:
                if transparent and transparent[-1] == event.tag:
                    transparent.pop()
                elif spec.tag is not None and event.tag == spec.tag:
                    break
                else:
                    self._unexpected(event, spec)

            elif event.kind == EventKind.EOF:
                if spec.tag is None:
                    break
                self._unexpected(event, spec)

            # Text between child elements carries no information

        if spec.build is None:
            return slots

        try:
            return spec.build(slots)
        except SvdParseError as e:
            # The end tag of the node has been consumed, so the reader is one level too high
            raise e.at(f"{self._reader.path}/{spec.tag}")

    def _dispatch(
        self, spec: NodeSpec, tag: str, slots: Slots, transparent: List[str]
    ) -> None:
        action = spec.children.get(tag)

        if isinstance(action, Scalar):
            slots[action.slot] = self._read_scalar(action)

        elif isinstance(action, Child):
            slots[action.slot].append(self.parse_node(action.node))

        elif isinstance(action, Splice):
            for name, values in self.parse_node(action.node).items():
                slots[name].extend(values)

        elif isinstance(action, Descend) or spec.default == Policy.DESCEND:
            transparent.append(tag)

        elif spec.default == Policy.SKIP:
            svd2utra.log.debug(f"Skipping <{tag}> at {self._reader.path}")
            self._skip_element()

        else:
            raise SvdUnexpectedTagError(
                f"Unexpected tag <{tag}> in <{spec.tag}>", self._reader.path
            )

    def _read_scalar(self, action: Scalar) -> Union[int, str, None]:
        """Read the contents of a leaf element whose start tag has just been read."""
        path = self._reader.path

        contents = self._reader.read_event()
        if contents.kind == EventKind.END and action.optional:
            return None
        if contents.kind != EventKind.TEXT:
            raise SvdUnexpectedTagError(f"Expected text content, got {contents}", path)
        assert contents.text is not None

        end = self._reader.read_event()
        if end.kind != EventKind.END:
            raise SvdUnexpectedTagError(f"Expected end of element, got {end}", path)

        if not action.numeric:
            return contents.text.strip()

        try:
            return to_int(contents.text, bits=self._options.pointer_width)
        except SvdParseError as e:
            raise e.at(path)

    def _skip_element(self) -> None:
        """Consume events up to and including the end of the current element."""
        depth = 1
        while depth > 0:
            event = self._reader.read_event()
            if event.kind == EventKind.START:
                depth += 1
            elif event.kind == EventKind.END:
                depth -= 1
            elif event.kind == EventKind.EOF:
                self._unexpected(event, None)

    def _unexpected(self, event: Event, spec: Optional[NodeSpec]) -> NoReturn:
        where = f" in <{spec.tag}>" if spec is not None and spec.tag else ""
        raise SvdUnexpectedTagError(f"Unexpected {event}{where}", self._reader.path)
