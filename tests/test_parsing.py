# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from pathlib import Path

import pytest

import svd2utra
from svd2utra import (
    Description,
    Field,
    Interrupt,
    MemoryRegion,
    SvdIntParseError,
    SvdKeyError,
    SvdMissingValueError,
    SvdNonUtf8Error,
    SvdSyntaxError,
    SvdUnexpectedTagError,
)

from conftest import make_svd, parse_bytes


def _peripheral(registers: str = "", extra: str = "") -> str:
    return (
        "<peripherals><peripheral>"
        "<name>P</name><baseAddress>0x1000</baseAddress><size>0x100</size>"
        f"{extra}<registers>{registers}</registers>"
        "</peripheral></peripherals>"
    )


def test_parse_device(device: Description):
    assert [p.name for p in device.peripherals] == ["UART", "Timer0"]
    assert [m.name for m in device.memory_regions] == ["RAM", "sram_ext"]

    uart = device.get_peripheral("UART")
    assert uart.base == 0xF000_1000
    assert uart.size == 0x100
    assert uart.address_bounds == (0xF000_1000, 0xF000_1100)
    assert uart.interrupts == (Interrupt(name="uart", value=3),)
    assert [r.name for r in uart.registers] == ["RXTX", "ev_status"]

    rxtx = uart.get_register("RXTX")
    assert rxtx.offset == 0
    assert rxtx.description == "Receive and transmit data"
    assert rxtx.fields == (Field(name="rxtx", lsb=0, msb=7),)

    ev_status = uart.get_register("ev_status")
    assert ev_status.offset == 8
    assert ev_status.description is None
    assert ev_status.fields == (
        Field(name="tx", lsb=0, msb=0),
        Field(name="rx", lsb=1, msb=1),
    )

    timer = device.get_peripheral("Timer0")
    assert timer.size == 0x40
    assert timer.registers == ()
    assert timer.interrupts == (Interrupt(name="timer0", value=4),)

    assert device.get_memory_region("RAM") == MemoryRegion(
        name="RAM", base=0x4000_0000, size=65536
    )


def test_parse_file(device_svd_file: Path, device: Description):
    assert svd2utra.parse(device_svd_file) == device
    assert svd2utra.parse(str(device_svd_file)) == device


def test_parse_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        svd2utra.parse(tmp_path / "missing.svd")


def test_lookup_unknown_name(device: Description):
    with pytest.raises(SvdKeyError, match="NOPE"):
        device.get_peripheral("NOPE")

    with pytest.raises(KeyError):
        device.get_peripheral("UART").get_register("NOPE")

    with pytest.raises(SvdKeyError):
        device.get_peripheral("UART").get_register("RXTX").get_field("NOPE")


def test_document_order_is_kept():
    registers = "".join(
        f"<register><name>{name}</name><addressOffset>{offset}</addressOffset></register>"
        for name, offset in [("ZETA", 0), ("ALPHA", 4), ("MID", 8)]
    )
    fields = (
        "<field><name>z</name><lsb>4</lsb><msb>4</msb></field>"
        "<field><name>a</name><lsb>0</lsb><msb>3</msb></field>"
    )
    document = make_svd(
        "<peripherals>"
        "<peripheral><name>B</name><baseAddress>0</baseAddress><size>4</size>"
        f"<registers>{registers}</registers></peripheral>"
        "<peripheral><name>A</name><baseAddress>4</baseAddress><size>4</size>"
        "<registers><register><name>R</name><addressOffset>0</addressOffset>"
        f"<fields>{fields}</fields></register></registers></peripheral>"
        "</peripherals>"
    )

    description = parse_bytes(document)

    assert [p.name for p in description.peripherals] == ["B", "A"]
    assert [r.name for r in description.peripherals[0].registers] == ["ZETA", "ALPHA", "MID"]
    assert [f.name for f in description.peripherals[1].registers[0].fields] == ["z", "a"]


def test_empty_document():
    description = parse_bytes(make_svd())
    assert description == Description()


def test_register_without_fields():
    description = parse_bytes(
        make_svd(_peripheral("<register><name>R</name><addressOffset>4</addressOffset></register>"))
    )
    register = description.peripherals[0].registers[0]
    assert register.fields == ()
    assert register.offset == 4


@pytest.mark.parametrize("empty", ["<description/>", "<description></description>"])
def test_register_with_empty_description(empty: str):
    description = parse_bytes(
        make_svd(
            _peripheral(
                f"<register><name>R</name>{empty}<addressOffset>8</addressOffset></register>"
            )
        )
    )
    register = description.peripherals[0].registers[0]
    assert register.description is None
    assert register.offset == 8


def test_zero_width_field():
    description = parse_bytes(
        make_svd(
            _peripheral(
                "<register><name>R</name><addressOffset>0</addressOffset><fields>"
                "<field><name>F</name><bitOffset>3</bitOffset><bitWidth>0</bitWidth></field>"
                "</fields></register>"
            )
        )
    )
    field = description.peripherals[0].registers[0].fields[0]
    assert (field.lsb, field.msb) == (3, 2)
    assert field.width == 0


def test_register_missing_address_offset():
    document = make_svd(_peripheral("<register><name>CTRL</name></register>"))

    with pytest.raises(SvdMissingValueError) as exc_info:
        parse_bytes(document)

    assert exc_info.value.element == "register"
    assert exc_info.value.missing == "addressOffset"
    assert "peripheral[1]" in str(exc_info.value)


@pytest.mark.parametrize(
    "peripheral, missing",
    [
        ("<peripheral><baseAddress>0</baseAddress><size>4</size></peripheral>", "name"),
        ("<peripheral><name>P</name><size>4</size></peripheral>", "baseAddress"),
        ("<peripheral><name>P</name><baseAddress>0</baseAddress></peripheral>", "size"),
    ],
)
def test_peripheral_missing_value(peripheral: str, missing: str):
    with pytest.raises(SvdMissingValueError) as exc_info:
        parse_bytes(make_svd(f"<peripherals>{peripheral}</peripherals>"))

    assert exc_info.value.missing == missing


def test_field_missing_bit_range():
    document = make_svd(
        _peripheral(
            "<register><name>R</name><addressOffset>0</addressOffset>"
            "<fields><field><name>F</name><lsb>0</lsb></field></fields></register>"
        )
    )

    with pytest.raises(SvdMissingValueError) as exc_info:
        parse_bytes(document)

    assert exc_info.value.element == "field"
    assert exc_info.value.missing == "msb"


def test_interrupt_missing_value():
    document = make_svd(_peripheral(extra="<interrupt><name>IRQ</name></interrupt>"))

    with pytest.raises(SvdMissingValueError) as exc_info:
        parse_bytes(document)

    assert exc_info.value.missing == "value"


def test_memory_region_missing_value():
    document = make_svd(
        vendor_extensions=(
            "<vendorExtensions><memoryRegions><memoryRegion>"
            "<name>RAM</name><size>4</size>"
            "</memoryRegion></memoryRegions></vendorExtensions>"
        )
    )

    with pytest.raises(SvdMissingValueError):
        parse_bytes(document)


@pytest.mark.parametrize(
    "field, lsb, msb",
    [
        ("<lsb>2</lsb><msb>2</msb>", 2, 2),
        ("<bitOffset>4</bitOffset><bitWidth>3</bitWidth>", 4, 6),
        ("<bitRange>[15:8]</bitRange>", 8, 15),
        ("<msb>0x1F</msb><lsb>0b10000</lsb>", 16, 31),
    ],
)
def test_field_bit_range_styles(field: str, lsb: int, msb: int):
    document = make_svd(
        _peripheral(
            "<register><name>R</name><addressOffset>0</addressOffset>"
            f"<fields><field><name>F</name>{field}</field></fields></register>"
        )
    )

    parsed = parse_bytes(document).peripherals[0].registers[0].fields[0]
    assert (parsed.lsb, parsed.msb) == (lsb, msb)


def test_field_invalid_bit_range():
    document = make_svd(
        _peripheral(
            "<register><name>R</name><addressOffset>0</addressOffset>"
            "<fields><field><name>F</name><bitRange>15-8</bitRange></field></fields></register>"
        )
    )

    with pytest.raises(SvdIntParseError):
        parse_bytes(document)


def test_overlapping_fields_are_accepted():
    document = make_svd(
        _peripheral(
            "<register><name>R</name><addressOffset>0</addressOffset><fields>"
            "<field><name>A</name><lsb>0</lsb><msb>7</msb></field>"
            "<field><name>B</name><lsb>4</lsb><msb>11</msb></field>"
            "</fields></register>"
            "<register><name>S</name><addressOffset>0</addressOffset></register>"
        )
    )

    registers = parse_bytes(document).peripherals[0].registers
    assert len(registers) == 2
    assert len(registers[0].fields) == 2


def test_invalid_number():
    document = make_svd(_peripheral("<register><name>R</name><addressOffset>0x4g</addressOffset></register>"))

    with pytest.raises(SvdIntParseError) as exc_info:
        parse_bytes(document)

    assert "addressOffset[1]" in str(exc_info.value)


def test_number_too_wide_for_pointer():
    document = make_svd(
        "<peripherals><peripheral><name>P</name><baseAddress>0x100000000</baseAddress>"
        "<size>4</size></peripheral></peripherals>"
    )

    assert parse_bytes(document).peripherals[0].base == 0x1_0000_0000

    with pytest.raises(SvdIntParseError):
        parse_bytes(document, svd2utra.Options(pointer_width=32))


@pytest.mark.parametrize(
    "leaf",
    [
        "<name></name>",
        "<name/>",
        "<name><b>X</b></name>",
        "<name>X<b/></name>",
    ],
)
def test_scalar_must_contain_only_text(leaf: str):
    document = make_svd(
        f"<peripherals><peripheral>{leaf}<baseAddress>0</baseAddress>"
        "<size>4</size></peripheral></peripherals>"
    )

    with pytest.raises(SvdUnexpectedTagError):
        parse_bytes(document)


def test_unknown_tag_in_container():
    document = make_svd(
        "<peripherals><cluster><name>C</name></cluster></peripherals>"
    )

    with pytest.raises(SvdUnexpectedTagError, match="<cluster>"):
        parse_bytes(document)


def test_unknown_tag_in_vendor_extensions():
    document = make_svd(vendor_extensions="<vendorExtensions><other/></vendorExtensions>")

    with pytest.raises(SvdUnexpectedTagError):
        parse_bytes(document)


def test_unknown_elements_in_records_are_skipped():
    document = make_svd(
        _peripheral(
            "<register><name>R</name><addressOffset>0</addressOffset>"
            "<writeConstraint><range><minimum>0</minimum><maximum>1</maximum></range>"
            "</writeConstraint>"
            "<fields><field><name>F</name><lsb>0</lsb><msb>0</msb>"
            "<enumeratedValues><enumeratedValue><name>OTHER</name><value>0</value>"
            "</enumeratedValue></enumeratedValues></field></fields>"
            "</register>",
            extra="<groupName>G</groupName><registersGroup><name>X</name></registersGroup>",
        )
    )

    peripheral = parse_bytes(document).peripherals[0]
    assert peripheral.name == "P"
    assert peripheral.registers[0].fields[0].name == "F"


def test_unknown_top_level_tags_are_ignored():
    document = make_svd(
        "<licenseText>none</licenseText><cpu><name>CM0</name><size>8</size></cpu>"
        "<peripherals></peripherals>"
    )

    assert parse_bytes(document) == Description()


def test_namespaced_tags():
    document = (
        b'<svd:device xmlns:svd="urn:example">'
        b"<svd:peripherals><svd:peripheral><svd:name>P</svd:name>"
        b"<svd:baseAddress>4</svd:baseAddress><svd:size>4</svd:size>"
        b"</svd:peripheral></svd:peripherals></svd:device>"
    )

    assert parse_bytes(document).peripherals[0].base == 4


def test_cdata_and_entities_in_text():
    document = make_svd(
        _peripheral(
            "<register><name><![CDATA[R]]></name>"
            "<description>A &amp; B</description>"
            "<addressOffset>0</addressOffset></register>"
        )
    )

    register = parse_bytes(document).peripherals[0].registers[0]
    assert register.name == "R"
    assert register.description == "A & B"


@pytest.mark.parametrize(
    "document",
    [
        b"",
        b"<device><peripherals></device>",
        b"<device><peripherals>",
        b"<device></device><device></device>",
    ],
)
def test_malformed_xml(document: bytes):
    with pytest.raises(SvdSyntaxError):
        parse_bytes(document)


def test_undecodable_document():
    document = make_svd(
        "<peripherals><peripheral><name>P</name><baseAddress>0</baseAddress>"
        "<size>4</size></peripheral></peripherals>"
    ).replace(b"<name>P</name>", b"<name>\xff\xfe</name>")

    with pytest.raises(SvdNonUtf8Error):
        parse_bytes(document)


def test_parse_is_repeatable(device_svd: bytes):
    assert parse_bytes(device_svd) == parse_bytes(device_svd)
