# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import logging
import sys
from textwrap import dedent
from typing import List, Optional

import svd2utra


def cli(argv: Optional[List[str]] = None) -> None:
    top = argparse.ArgumentParser(
        prog="svd2utra",
        description=dedent(
            """\
            Generate a UTRA style Rust module with register access constants from a
            System View Description (SVD) file.
            """
        ),
        allow_abbrev=False,
    )
    top.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help=(
            "Output verbose logs. Can be given multiple times to increase the verbosity. "
            "By default only critical messages are output."
        ),
    )
    top.add_argument(
        "svd_file",
        metavar="SVD_FILE",
        type=argparse.FileType("rb"),
        help="Path to the device SVD file. Use '-' to read from stdin.",
    )
    top.add_argument(
        "-o",
        "--output-file",
        type=argparse.FileType("wb"),
        default=sys.stdout.buffer,
        help="File to write the generated module to. If not given, output is written to stdout.",
    )
    top.add_argument(
        "--pointer-width",
        type=int,
        default=svd2utra.Options.pointer_width,
        help=(
            "Width in bits of the integers used for addresses and other numeric values. "
            "Defaults to %(default)s."
        ),
    )

    args = top.parse_args(argv)

    log_level = {
        0: logging.CRITICAL,
        1: logging.WARNING,
        2: logging.INFO,
        3: logging.DEBUG,
    }.get(args.verbose, logging.DEBUG)
    svd2utra.log.setLevel(log_level)

    options = svd2utra.Options(pointer_width=args.pointer_width)

    try:
        with args.svd_file as src:
            svd2utra.generate(src, args.output_file, options)
    except svd2utra.SvdError as e:
        svd2utra.log.critical(f"{top.prog}: error: {e}")
        sys.exit(1)
    finally:
        if args.output_file is sys.stdout.buffer:
            args.output_file.flush()
        else:
            args.output_file.close()

    sys.exit(0)


# Entry point when running with python -m svd2utra
if __name__ == "__main__":
    cli()
