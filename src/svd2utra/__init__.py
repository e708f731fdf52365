# Copyright (c) 2022 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from .errors import (
    SvdError,
    SvdParseError,
    SvdSyntaxError,
    SvdUnexpectedTagError,
    SvdMissingValueError,
    SvdIntParseError,
    SvdNonUtf8Error,
    SvdDefinitionError,
    SvdWriteError,
    SvdKeyError,
)
from .device import (
    Description,
    Field,
    Interrupt,
    MemoryRegion,
    Peripheral,
    Register,
)
from .parsing import (
    parse,
    parse_stream,
    Options,
)
from .utra import render
from .pipeline import generate, generate_file

import importlib.metadata
import logging

__version__ = importlib.metadata.version("svd2utra")


def _init_logger() -> logging.Logger:
    formatter = logging.Formatter("{message}", style="{")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger("svd2utra")
    logger.setLevel(logging.ERROR)
    logger.addHandler(handler)

    return logger


# logging.Logger instance used for log output from svd2utra
log = _init_logger()

__all__ = [
    # from errors
    "SvdError",
    "SvdParseError",
    "SvdSyntaxError",
    "SvdUnexpectedTagError",
    "SvdMissingValueError",
    "SvdIntParseError",
    "SvdNonUtf8Error",
    "SvdDefinitionError",
    "SvdWriteError",
    "SvdKeyError",
    # from device
    "Description",
    "Field",
    "Interrupt",
    "MemoryRegion",
    "Peripheral",
    "Register",
    # from parsing
    "parse",
    "parse_stream",
    "Options",
    # from utra
    "render",
    # from pipeline
    "generate",
    "generate_file",
    # other
    "log",
    "__version__",
]
