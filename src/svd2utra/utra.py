# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Rendering of a parsed description as a UTRA style Rust module.

The module consists of four sections, rendered independently and always in the same order:
  1. A fixed preamble defining the Register, Field and CSR accessor types.
  2. Base address and length constants for the memory regions.
  3. Base address constants for the peripherals, followed by a `utra` module with register,
     field and interrupt constants for each peripheral.
  4. A test that is ignored by default, which passes every generated constant through the
     accessor methods so that type errors are caught at build time.

Rendering is deterministic: the same description always gives the same text.
"""

from __future__ import annotations

from typing import Iterator, List, NamedTuple, Sequence

import svd2utra

from .device import Description, Field, MemoryRegion, Peripheral, Register
from .errors import SvdDefinitionError

# Widths covered by the mask table of Field::new()
MASK_TABLE_WIDTHS = range(32)

_PREAMBLE_HEAD = """\
// Generated by svd2utra. Do not edit.

use core::convert::TryInto;
pub struct Register {
    /// Offset of this register within this CSR
    offset: usize,
}
impl Register {
    pub const fn new(offset: usize) -> Register {
        Register { offset }
    }
}
pub struct Field {
    /// A bitmask we use to AND to the value, unshifted.
    /// E.g. for a width of `3` bits, this mask would be 0b111.
    mask: usize,
    /// Offset of the first bit in this field
    offset: usize,
    /// A copy of the register address that this field
    /// is a member of. Ideally this is optimized out by the
    /// compiler.
    register: Register,
}
impl Field {
    /// Define a new CSR field with the given width at a specified
    /// offset from the start of the register.
    pub const fn new(width: usize, offset: usize, register: Register) -> Field {
        // `usize::pow()` is not available in a const fn, so the masks are spelled out.
        let mask = match width {
"""

_PREAMBLE_TAIL = """\
            _ => 0,
        };
        Field {
            mask,
            offset,
            register,
        }
    }
}
pub struct CSR<T> {
    base: *mut T,
}
impl<T> CSR<T>
where
    T: core::convert::TryFrom<usize> + core::convert::TryInto<usize> + core::default::Default,
{
    pub fn new(base: *mut T) -> Self {
        CSR { base }
    }
    /// Read the contents of this register
    pub fn r(&mut self, reg: Register) -> T {
        let usize_base: *mut usize = unsafe { core::mem::transmute(self.base) };
        unsafe { usize_base.add(reg.offset).read_volatile() }
            .try_into()
            .unwrap_or_default()
    }
    /// Read a field from this CSR
    pub fn rf(&mut self, field: Field) -> T {
        let usize_base: *mut usize = unsafe { core::mem::transmute(self.base) };
        ((unsafe { usize_base.add(field.register.offset).read_volatile() } >> field.offset)
            & field.mask)
            .try_into()
            .unwrap_or_default()
    }
    /// Read-modify-write a given field in this CSR
    pub fn rmwf(&mut self, field: Field, value: T) {
        let usize_base: *mut usize = unsafe { core::mem::transmute(self.base) };
        let value_as_usize: usize = value.try_into().unwrap_or_default() << field.offset;
        let previous =
            unsafe { usize_base.add(field.register.offset).read_volatile() } & !field.mask;
        unsafe {
            usize_base
                .add(field.register.offset)
                .write_volatile(previous | value_as_usize)
        };
    }
    /// Write a given field without reading it first
    pub fn wfo(&mut self, field: Field, value: T) {
        let usize_base: *mut usize = unsafe { core::mem::transmute(self.base) };
        let value_as_usize: usize = (value.try_into().unwrap_or_default() & field.mask) << field.offset;
        unsafe {
            usize_base
                .add(field.register.offset)
                .write_volatile(value_as_usize)
        };
    }
    /// Write the entire contents of a register without reading it first
    pub fn wo(&mut self, reg: Register, value: T) {
        let usize_base: *mut usize = unsafe { core::mem::transmute(self.base) };
        let value_as_usize: usize = value.try_into().unwrap_or_default();
        unsafe { usize_base.add(reg.offset).write_volatile(value_as_usize) };
    }
    /// Zero a field from a provided value
    pub fn zf(&mut self, field: Field, value: T) -> T {
        let value_as_usize: usize = value.try_into().unwrap_or_default();
        (value_as_usize & !(field.mask << field.offset))
            .try_into()
            .unwrap_or_default()
    }
    /// Shift & mask a value to its final field position
    pub fn ms(&mut self, field: Field, value: T) -> T {
        let value_as_usize: usize = value.try_into().unwrap_or_default();
        ((value_as_usize & field.mask) << field.offset)
            .try_into()
            .unwrap_or_default()
    }
}
"""

_SELF_CHECK_HEAD = """
#[cfg(test)]
mod tests {
    #[test]
    #[ignore]
    fn compile_check() {
        use super::*;
"""

_SELF_CHECK_TAIL = """\
    }
}
"""


class Section(NamedTuple):
    """A rendered section of the output module."""

    name: str
    text: str


class _Symbols(NamedTuple):
    """Names used to refer to a peripheral in the generated code."""

    # Name of the base address constant.
    base: str

    # Name of the module with the peripheral's register constants.
    module: str

    # Name of the CSR variable in the self-check.
    csr: str


def _peripheral_symbols(peripheral: Peripheral) -> _Symbols:
    return _Symbols(
        base=f"HW_{peripheral.name.upper()}_BASE",
        module=peripheral.name.lower(),
        csr=f"{peripheral.name.lower()}_csr",
    )


def _register_symbol(register: Register) -> str:
    return register.name.upper()


def _field_symbol(register: Register, field: Field) -> str:
    return f"{_register_symbol(register)}_{field.name.upper()}"


def _memory_region_symbols(region: MemoryRegion) -> tuple[str, str]:
    name = f"HW_{region.name.upper()}_MEM"
    return name, f"{name}_LEN"


def render_preamble() -> str:
    """Render the fixed definitions of the register accessor types."""
    lines = [_PREAMBLE_HEAD]
    for width in MASK_TABLE_WIDTHS:
        lines.append(f"            {width} => {(1 << width) - 1},\n")
    lines.append(_PREAMBLE_TAIL)
    return "".join(lines)


def render_memory_regions(regions: Sequence[MemoryRegion]) -> str:
    """Render the base address and length constants of the memory regions."""
    lines = ["// Physical base addresses of memory regions"]
    for region in regions:
        base_name, len_name = _memory_region_symbols(region)
        lines.append(f"pub const {base_name}: usize = 0x{region.base:08x};")
        lines.append(f"pub const {len_name}: usize = {region.size};")
    lines.append("")
    return "\n".join(lines) + "\n"


def render_peripherals(peripherals: Sequence[Peripheral]) -> str:
    """
    Render the base address constants of the peripherals and the `utra` module containing the
    register, field and interrupt constants of each peripheral.

    :raises SvdDefinitionError: If a field has its most significant bit more than one below its
                                least significant bit.
    """
    lines = ["// Physical base addresses of registers"]
    for peripheral in peripherals:
        symbols = _peripheral_symbols(peripheral)
        lines.append(f"pub const {symbols.base}: usize = 0x{peripheral.base:08x};")
    lines.append("")

    lines.append("pub mod utra {")
    for peripheral in peripherals:
        lines.append("")
        lines.extend(_render_peripheral_module(peripheral))
    lines.append("}")

    return "\n".join(lines) + "\n"


def _render_peripheral_module(peripheral: Peripheral) -> List[str]:
    symbols = _peripheral_symbols(peripheral)
    lines = [f"    pub mod {symbols.module} {{"]

    for register in peripheral.registers:
        reg_name = _register_symbol(register)
        lines.append("")
        if register.description:
            lines.append(f"        /// {register.description}")
        lines.append(
            f"        pub const {reg_name}: crate::Register = "
            f"crate::Register::new({register.offset});"
        )
        for field in register.fields:
            _check_field(peripheral, register, field)
            lines.append(
                f"        pub const {_field_symbol(register, field)}: crate::Field = "
                f"crate::Field::new({field.width}, {field.offset}, {reg_name});"
            )

    lines.append("")
    for interrupt in peripheral.interrupts:
        lines.append(
            f"        pub const {interrupt.name.upper()}_IRQ: usize = {interrupt.value};"
        )
    lines.append("    }")

    return lines


def _check_field(peripheral: Peripheral, register: Register, field: Field) -> None:
    if field.msb + 1 < field.lsb:
        raise SvdDefinitionError(
            field,
            f"msb is more than one below lsb in {peripheral.name}.{register.name}, "
            "so the field width cannot be represented",
        )

    if field.width not in MASK_TABLE_WIDTHS:
        svd2utra.log.warning(
            f"Field {peripheral.name}.{register.name}.{field.name} is {field.width} bits wide; "
            f"widths above {MASK_TABLE_WIDTHS[-1]} get an empty mask"
        )


def render_self_check(peripherals: Sequence[Peripheral]) -> str:
    """
    Render a test that passes every register and field constant through the CSR accessor
    methods. The test is ignored by default and makes no assertions; its only purpose is to fail
    the build if the generated constants do not fit the accessor types.
    """
    lines = [_SELF_CHECK_HEAD]
    for peripheral in peripherals:
        symbols = _peripheral_symbols(peripheral)
        csr = symbols.csr
        lines.append(
            f"        let mut {csr} = CSR::new({symbols.base} as *mut u32);\n"
        )
        for register in peripheral.registers:
            reg_path = f"utra::{symbols.module}::{_register_symbol(register)}"
            lines.append("\n")
            lines.append(f"        let foo = {csr}.r({reg_path});\n")
            lines.append(f"        {csr}.wo({reg_path}, foo);\n")
            for field in register.fields:
                field_path = f"utra::{symbols.module}::{_field_symbol(register, field)}"
                lines.append(f"        let bar = {csr}.rf({field_path});\n")
                lines.append(f"        {csr}.rmwf({field_path}, bar);\n")
                lines.append(f"        let mut baz = {csr}.zf({field_path}, bar);\n")
                lines.append(f"        baz |= {csr}.ms({field_path}, 1);\n")
                lines.append(f"        {csr}.wfo({field_path}, baz);\n")
    lines.append(_SELF_CHECK_TAIL)
    return "".join(lines)


def iter_sections(description: Description) -> Iterator[Section]:
    """
    Render the sections of the output module one at a time, in output order.

    :param description: Parsed description to render.

    :raises SvdDefinitionError: If the description contains an element that cannot be rendered.
    """
    yield Section("preamble", render_preamble())
    yield Section("memory regions", render_memory_regions(description.memory_regions))
    yield Section("peripherals", render_peripherals(description.peripherals))
    yield Section("self-check", render_self_check(description.peripherals))


def render(description: Description) -> str:
    """
    Render a parsed description as a Rust module.

    :param description: Parsed description to render.

    :raises SvdDefinitionError: If the description contains an element that cannot be rendered.

    :return: Source text of the module.
    """
    return "".join(section.text for section in iter_sections(description))
