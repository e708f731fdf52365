# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Normalized in-memory representation of a SVD device.
This representation does not aim to expose all the information contained in the SVD file,
but only the parts needed to generate register access code: peripherals, registers, fields,
interrupts and vendor specific memory regions.

All the classes in this module are immutable and are constructed once by the parser.
Sequences are kept in document order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, TypeVar

from .errors import SvdKeyError


@dataclass(frozen=True)
class Field:
    """Contiguous range of bits in a register."""

    # Name of the field, unique within the register.
    name: str

    # Least significant bit of the field.
    lsb: int

    # Most significant bit of the field.
    msb: int

    @property
    def width(self) -> int:
        """Number of bits in the field."""
        return self.msb - self.lsb + 1

    @property
    def offset(self) -> int:
        """Bit offset of the field within its register."""
        return self.lsb


@dataclass(frozen=True)
class Register:
    """Register within a peripheral."""

    # Name of the register, unique within the peripheral.
    name: str

    # Offset of the register from the peripheral base address.
    offset: int

    # Description of the register, if given.
    description: Optional[str] = None

    # Fields in the register, in document order.
    fields: Tuple[Field, ...] = ()

    def get_field(self, name: str) -> Field:
        """
        Get a field in the register by name.

        :param name: Name of the field.

        :raises SvdKeyError: If the register has no field with the given name.

        :return: Field object.
        """
        return _find(self.fields, name, self)

    def __str__(self) -> str:
        return f"register {self.name}"


@dataclass(frozen=True)
class Interrupt:
    """Interrupt line used by a peripheral."""

    name: str
    value: int


@dataclass(frozen=True)
class Peripheral:
    """Memory mapped peripheral."""

    # Name of the peripheral, unique within the device.
    name: str

    # Absolute base address of the peripheral.
    base: int

    # Size of the address space spanned by the peripheral.
    size: int

    # Interrupts used by the peripheral, in document order.
    interrupts: Tuple[Interrupt, ...] = ()

    # Registers in the peripheral, in document order.
    registers: Tuple[Register, ...] = ()

    @property
    def address_bounds(self) -> Tuple[int, int]:
        """Lowest address and one past the highest address of the peripheral."""
        return self.base, self.base + self.size

    def get_register(self, name: str) -> Register:
        """
        Get a register in the peripheral by name.

        :param name: Name of the register.

        :raises SvdKeyError: If the peripheral has no register with the given name.

        :return: Register object.
        """
        return _find(self.registers, name, self)

    def __str__(self) -> str:
        return f"peripheral {self.name} @ 0x{self.base:08x}"


@dataclass(frozen=True)
class MemoryRegion:
    """Memory region described in the vendor extensions of the SVD file."""

    name: str
    base: int
    size: int

    def __str__(self) -> str:
        return f"memory region {self.name} @ 0x{self.base:08x}"


@dataclass(frozen=True)
class Description:
    """Parsed hardware description. Root of the model."""

    # Peripherals in the device, in document order.
    peripherals: Tuple[Peripheral, ...] = ()

    # Memory regions from the vendor extensions, in document order.
    memory_regions: Tuple[MemoryRegion, ...] = ()

    def get_peripheral(self, name: str) -> Peripheral:
        """
        Get a peripheral by name.

        :param name: Name of the peripheral, as given in the SVD file.

        :raises SvdKeyError: If the description has no peripheral with the given name.

        :return: Peripheral object.
        """
        return _find(self.peripherals, name, self)

    def get_memory_region(self, name: str) -> MemoryRegion:
        """
        Get a memory region by name.

        :param name: Name of the memory region, as given in the SVD file.

        :raises SvdKeyError: If the description has no memory region with the given name.

        :return: MemoryRegion object.
        """
        return _find(self.memory_regions, name, self)

    def __str__(self) -> str:
        return "device description"


_Named = TypeVar("_Named", Field, Register, Peripheral, MemoryRegion)


def _find(items: Iterable[_Named], name: str, source: object) -> _Named:
    for item in items:
        if item.name == name:
            return item

    raise SvdKeyError(name, source)
