# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from typing import IO, Union

import svd2utra

from .errors import SvdWriteError
from .parsing import Options, parse_stream
from .utra import iter_sections


def generate(src: IO[bytes], dest: IO[bytes], options: Options = Options()) -> None:
    """
    Generate a UTRA style Rust module from a SVD document.
    The document is parsed completely before anything is written to the destination.

    :param src: Readable binary stream containing the SVD document.
    :param dest: Writable binary stream the module is written to. The stream is not closed.
    :param options: Parsing options.

    :raises SvdParseError: If an error occurred while parsing the SVD document.
    :raises SvdDefinitionError: If the description contains an element that cannot be rendered.
    :raises SvdWriteError: If writing to the destination failed. Content that was written before
                           the failure is left as is.
    """
    description = parse_stream(src, options)

    for section in iter_sections(description):
        try:
            dest.write(section.text.encode("utf-8"))
        except (OSError, ValueError) as e:
            raise SvdWriteError(f"Error writing the {section.name} section: {e}") from e

        svd2utra.log.debug(f"Wrote {section.name} section ({len(section.text)} characters)")


def generate_file(
    svd_path: Union[str, Path],
    out_path: Union[str, Path],
    options: Options = Options(),
) -> None:
    """
    Generate a UTRA style Rust module from a SVD file.

    :param svd_path: Path to the SVD file.
    :param out_path: Path of the generated module. An existing file is overwritten.
    :param options: Parsing options.

    :raises FileNotFoundError: If the SVD file does not exist.
    :raises SvdError: If the module could not be generated.
    """
    svd_file = Path(svd_path)

    if not svd_file.is_file():
        raise FileNotFoundError(f"No such file: {svd_file.absolute()}")

    with open(svd_file, "rb") as src:
        try:
            dest = open(out_path, "wb")
        except OSError as e:
            raise SvdWriteError(f"Could not open {out_path} for writing: {e}") from e

        with dest:
            generate(src, dest, options)
