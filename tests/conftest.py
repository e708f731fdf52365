# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import io
from pathlib import Path
from textwrap import dedent

import pytest

import svd2utra

DEVICE_SVD = dedent(
    """\
    <?xml version="1.0" encoding="utf-8"?>
    <device schemaVersion="1.1" xmlns:xs="http://www.w3.org/2001/XMLSchema-instance">
      <vendor>Example</vendor>
      <name>TESTDEV</name>
      <!-- comments are ignored -->
      <cpu>
        <name>CM4</name>
        <revision>r0p1</revision>
      </cpu>
      <addressUnitBits>8</addressUnitBits>
      <width>32</width>
      <peripherals>
        <peripheral>
          <name>UART</name>
          <description>Serial port</description>
          <baseAddress>0xF0001000</baseAddress>
          <addressBlock>
            <offset>0</offset>
            <size>0x100</size>
            <usage>registers</usage>
          </addressBlock>
          <interrupt>
            <name>uart</name>
            <description>UART event</description>
            <value>3</value>
          </interrupt>
          <registers>
            <register>
              <name>RXTX</name>
              <description>Receive and
                transmit data</description>
              <addressOffset>0x0</addressOffset>
              <size>32</size>
              <fields>
                <field>
                  <name>rxtx</name>
                  <msb>7</msb>
                  <bitRange>[7:0]</bitRange>
                  <lsb>0</lsb>
                  <access>read-write</access>
                </field>
              </fields>
            </register>
            <register>
              <name>ev_status</name>
              <addressOffset>0x8</addressOffset>
              <fields>
                <field>
                  <name>tx</name>
                  <lsb>0</lsb>
                  <msb>0</msb>
                  <enumeratedValues>
                    <enumeratedValue>
                      <name>IGNORED</name>
                      <value>1</value>
                    </enumeratedValue>
                  </enumeratedValues>
                </field>
                <field>
                  <name>rx</name>
                  <bitOffset>1</bitOffset>
                  <bitWidth>1</bitWidth>
                </field>
              </fields>
            </register>
          </registers>
        </peripheral>
        <peripheral>
          <name>Timer0</name>
          <baseAddress>0xF0002000</baseAddress>
          <size>0x40</size>
          <interrupt>
            <name>timer0</name>
            <value>0b100</value>
          </interrupt>
          <registers>
          </registers>
        </peripheral>
      </peripherals>
      <vendorExtensions>
        <memoryRegions>
          <memoryRegion>
            <name>RAM</name>
            <baseAddress>0x40000000</baseAddress>
            <size>65536</size>
          </memoryRegion>
          <memoryRegion>
            <name>sram_ext</name>
            <baseAddress>0x10000000</baseAddress>
            <size>0x80000</size>
          </memoryRegion>
        </memoryRegions>
      </vendorExtensions>
    </device>
    """
)


def make_svd(peripherals: str = "", vendor_extensions: str = "") -> bytes:
    """Wrap SVD snippets in a device element."""
    document = (
        "<device>\n"
        "<name>DEV</name>\n"
        f"{peripherals}\n"
        f"{vendor_extensions}\n"
        "</device>\n"
    )
    return document.encode("utf-8")


def parse_bytes(data: bytes, options: svd2utra.Options = svd2utra.Options()) -> svd2utra.Description:
    return svd2utra.parse_stream(io.BytesIO(data), options)


@pytest.fixture
def device_svd() -> bytes:
    return DEVICE_SVD.encode("utf-8")


@pytest.fixture
def device(device_svd: bytes) -> svd2utra.Description:
    return parse_bytes(device_svd)


@pytest.fixture
def device_svd_file(tmp_path: Path, device_svd: bytes) -> Path:
    svd_file = tmp_path / "device.svd"
    svd_file.write_bytes(device_svd)
    return svd_file
