# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Bindings between the SVD XML elements and the parser state machine.
Each SVD element understood by the parser is a node in the SCHEMA table, which maps the tags of
the child elements of the node to the action the parser takes when it encounters them.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from .device import Field, Interrupt, MemoryRegion, Peripheral, Register
from .errors import SvdIntParseError, SvdMissingValueError, SvdNonUtf8Error

_DIGITS = {
    2: re.compile(r"[01]+"),
    8: re.compile(r"[0-7]+"),
    10: re.compile(r"[0-9]+"),
    16: re.compile(r"[0-9a-fA-F]+"),
}

_BIT_RANGE = re.compile(r"\[\s*(\w+)\s*:\s*(\w+)\s*\]")


def get_base(number: str) -> Tuple[str, int]:
    """
    Detect the base of a SVD integer literal from its prefix.

    :param number: String representation of the integer.

    :return: The digits with the prefix removed, and the detected base.
    """
    if number.startswith(("0x", "0X")):
        return number[2:], 16
    if number.startswith(("0b", "0B")):
        return number[2:], 2
    if number.startswith("#"):
        return number[1:], 2
    if number.startswith("0") and number != "0":
        # Only the first zero is part of the prefix
        return number[1:], 8
    return number, 10


def to_int(number: Union[str, bytes], bits: int = 64) -> int:
    """
    Convert a string representation of an integer following the SVD format to its corresponding
    integer representation.

    :param number: String representation of the integer. Bytes are decoded as UTF-8.
    :param bits: Width of the unsigned integer the value must fit in.

    :raises SvdNonUtf8Error: If number is not valid UTF-8.
    :raises SvdIntParseError: If the digits are invalid in the detected base or the value does not
                              fit in the given number of bits.

    :return: Decoded integer.
    """
    if isinstance(number, bytes):
        try:
            number = number.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SvdNonUtf8Error(f"Integer literal {number!r} is not valid UTF-8") from e

    digits, base = get_base(number.strip())

    # int() alone would also accept signs, underscores and whitespace
    if not _DIGITS[base].fullmatch(digits):
        raise SvdIntParseError(f"Invalid base {base} integer literal {number!r}")

    value = int(digits, base=base)
    if value.bit_length() > bits:
        raise SvdIntParseError(f"Integer literal {number!r} does not fit in {bits} bits")

    return value


def normalize_text(text: str) -> str:
    """Collapse all runs of whitespace in a text into single spaces."""
    return " ".join(text.split())


class Node(enum.Enum):
    """SVD elements understood by the parser."""

    DOCUMENT = enum.auto()
    VENDOR_EXTENSIONS = enum.auto()
    MEMORY_REGIONS = enum.auto()
    MEMORY_REGION = enum.auto()
    PERIPHERALS = enum.auto()
    PERIPHERAL = enum.auto()
    INTERRUPT = enum.auto()
    REGISTERS = enum.auto()
    REGISTER = enum.auto()
    FIELDS = enum.auto()
    FIELD = enum.auto()


class Policy(enum.Enum):
    """What the parser does with child elements that are not in the node's table."""

    # Ignore the tag, but keep dispatching the elements inside it.
    DESCEND = enum.auto()
    # Ignore the element and everything inside it.
    SKIP = enum.auto()
    # Fail with SvdUnexpectedTagError.
    REJECT = enum.auto()


class Scalar(NamedTuple):
    """Store the text content of a leaf element in a slot."""

    slot: str
    numeric: bool = False

    # Empty elements are accepted and leave the slot unset.
    optional: bool = False


class Child(NamedTuple):
    """Parse a child node and append the result to a slot."""

    node: Node
    slot: str


class Splice(NamedTuple):
    """Parse a container node and merge the slots it collected into the current node."""

    node: Node


class Descend(NamedTuple):
    """Treat the element as transparent, dispatching its children in the current node."""

    ...


Action = Union[Scalar, Child, Splice, Descend]

# Values collected for a node while it is being parsed
Slots = Dict[str, Any]


@dataclass(frozen=True)
class NodeSpec:
    """Parsing rules for a node."""

    # Tag of the element that closes the node. None for the document, which ends at EOF.
    tag: Optional[str]

    # Action for each recognized child tag.
    children: Mapping[str, Action]

    # Action for child tags that are not recognized.
    default: Policy

    # Slots that collect child nodes. These start out as empty lists.
    lists: Tuple[str, ...] = ()

    # Constructs the node value from its slots. Nodes without one pass their slots to the parent.
    build: Optional[Callable[[Slots], Any]] = field(default=None, compare=False)


def require(slots: Slots, node: str, *names: str) -> List[Any]:
    """
    Get the values of required slots.

    :raises SvdMissingValueError: If any of the slots was never filled.
    """
    values = []
    for name in names:
        if name not in slots:
            raise SvdMissingValueError(node, name)
        values.append(slots[name])
    return values


def bit_range(slots: Slots) -> Tuple[int, int]:
    """
    Least and most significant bit of a field.
    The bit range may be given in any of the three styles supported by SVD, in order of
    precedence: lsb/msb, bitOffset/bitWidth or a bitRange string of the form "[msb:lsb]".
    """
    if "lsb" in slots and "msb" in slots:
        return slots["lsb"], slots["msb"]

    if "bitOffset" in slots and "bitWidth" in slots:
        offset, width = slots["bitOffset"], slots["bitWidth"]
        return offset, offset + width - 1

    if "bitRange" in slots:
        match = _BIT_RANGE.fullmatch(slots["bitRange"].strip())
        if match is None:
            raise SvdIntParseError(f"Invalid bit range {slots['bitRange']!r}")
        msb, lsb = to_int(match[1]), to_int(match[2])
        return lsb, msb

    # Report the missing value for the most common style
    missing = "msb" if "lsb" in slots else "lsb"
    raise SvdMissingValueError("field", missing)


def _build_field(slots: Slots) -> Field:
    (name,) = require(slots, "field", "name")
    lsb, msb = bit_range(slots)
    return Field(name=name, lsb=lsb, msb=msb)


def _build_register(slots: Slots) -> Register:
    name, offset = require(slots, "register", "name", "addressOffset")
    description = slots.get("description")
    return Register(
        name=name,
        offset=offset,
        description=normalize_text(description) if description else None,
        fields=tuple(slots["fields"]),
    )


def _build_interrupt(slots: Slots) -> Interrupt:
    name, value = require(slots, "interrupt", "name", "value")
    return Interrupt(name=name, value=value)


def _build_peripheral(slots: Slots) -> Peripheral:
    name, base, size = require(slots, "peripheral", "name", "baseAddress", "size")
    return Peripheral(
        name=name,
        base=base,
        size=size,
        interrupts=tuple(slots["interrupts"]),
        registers=tuple(slots["registers"]),
    )


def _build_memory_region(slots: Slots) -> MemoryRegion:
    name, base, size = require(slots, "memoryRegion", "name", "baseAddress", "size")
    return MemoryRegion(name=name, base=base, size=size)


_NAME = Scalar("name")

SCHEMA: Mapping[Node, NodeSpec] = MappingProxyType(
    {
        Node.DOCUMENT: NodeSpec(
            tag=None,
            children={
                "peripherals": Splice(Node.PERIPHERALS),
                "vendorExtensions": Splice(Node.VENDOR_EXTENSIONS),
            },
            default=Policy.DESCEND,
            lists=("peripherals", "memory_regions"),
        ),
        Node.VENDOR_EXTENSIONS: NodeSpec(
            tag="vendorExtensions",
            children={"memoryRegions": Splice(Node.MEMORY_REGIONS)},
            default=Policy.REJECT,
            lists=("memory_regions",),
        ),
        Node.MEMORY_REGIONS: NodeSpec(
            tag="memoryRegions",
            children={"memoryRegion": Child(Node.MEMORY_REGION, "memory_regions")},
            default=Policy.REJECT,
            lists=("memory_regions",),
        ),
        Node.MEMORY_REGION: NodeSpec(
            tag="memoryRegion",
            children={
                "name": _NAME,
                "baseAddress": Scalar("baseAddress", numeric=True),
                "size": Scalar("size", numeric=True),
            },
            default=Policy.SKIP,
            build=_build_memory_region,
        ),
        Node.PERIPHERALS: NodeSpec(
            tag="peripherals",
            children={"peripheral": Child(Node.PERIPHERAL, "peripherals")},
            default=Policy.REJECT,
            lists=("peripherals",),
        ),
        Node.PERIPHERAL: NodeSpec(
            tag="peripheral",
            children={
                "name": _NAME,
                "baseAddress": Scalar("baseAddress", numeric=True),
                "size": Scalar("size", numeric=True),
                # The size of the peripheral is taken from its address block
                "addressBlock": Descend(),
                "interrupt": Child(Node.INTERRUPT, "interrupts"),
                "registers": Splice(Node.REGISTERS),
            },
            default=Policy.SKIP,
            lists=("interrupts", "registers"),
            build=_build_peripheral,
        ),
        Node.INTERRUPT: NodeSpec(
            tag="interrupt",
            children={
                "name": _NAME,
                "value": Scalar("value", numeric=True),
            },
            default=Policy.SKIP,
            build=_build_interrupt,
        ),
        Node.REGISTERS: NodeSpec(
            tag="registers",
            children={"register": Child(Node.REGISTER, "registers")},
            default=Policy.REJECT,
            lists=("registers",),
        ),
        Node.REGISTER: NodeSpec(
            tag="register",
            children={
                "name": _NAME,
                "description": Scalar("description", optional=True),
                "addressOffset": Scalar("addressOffset", numeric=True),
                "fields": Splice(Node.FIELDS),
            },
            default=Policy.SKIP,
            lists=("fields",),
            build=_build_register,
        ),
        Node.FIELDS: NodeSpec(
            tag="fields",
            children={"field": Child(Node.FIELD, "fields")},
            default=Policy.REJECT,
            lists=("fields",),
        ),
        Node.FIELD: NodeSpec(
            tag="field",
            children={
                "name": _NAME,
                "lsb": Scalar("lsb", numeric=True),
                "msb": Scalar("msb", numeric=True),
                "bitOffset": Scalar("bitOffset", numeric=True),
                "bitWidth": Scalar("bitWidth", numeric=True),
                "bitRange": Scalar("bitRange"),
            },
            default=Policy.SKIP,
            build=_build_field,
        ),
    }
)
