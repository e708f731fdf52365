# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from typing import Any, Optional

from typing_extensions import Self


class SvdError(Exception):
    """Base class for errors raised by the library."""

    ...


class SvdParseError(SvdError):
    """Raised when an error occurs during SVD parsing."""

    def __init__(self, explanation: str, path: Optional[str] = None) -> None:
        self.explanation = explanation
        self.path = path
        super().__init__(self._format())

    def at(self, path: str) -> Self:
        """Set the location of the error if it is not already known."""
        if self.path is None:
            self.path = path
            self.args = (self._format(),)
        return self

    def _format(self) -> str:
        location = f" (at {self.path})" if self.path else ""
        return f"{self.explanation}{location}"


class SvdSyntaxError(SvdParseError):
    """Raised when the SVD document is not well-formed XML."""

    ...


class SvdUnexpectedTagError(SvdParseError):
    """Raised when the XML event sequence does not match the expected shape of an element."""

    ...


class SvdMissingValueError(SvdParseError):
    """Raised when a required child element was never seen before its parent closed."""

    def __init__(self, element: str, missing: str, path: Optional[str] = None) -> None:
        self.element = element
        self.missing = missing
        super().__init__(f"<{element}> is missing required value <{missing}>", path)


class SvdIntParseError(SvdParseError, ValueError):
    """Raised when a numeric literal cannot be parsed in its detected base."""

    ...


class SvdNonUtf8Error(SvdParseError, UnicodeError):
    """Raised when text content in the SVD document is not valid UTF-8."""

    ...


class SvdDefinitionError(SvdError, ValueError):
    """Raised when a parsed element cannot be represented in the generated code."""

    def __init__(self, element: Any, explanation: str):
        super().__init__(f"Invalid SVD element {element!r}: {explanation}")


class SvdWriteError(SvdError, OSError):
    """Raised when writing the generated code to its destination fails."""

    ...


class SvdKeyError(SvdError, KeyError):
    """Raised when given an invalid child element name in a description lookup."""

    def __init__(self, name: str, source: Any, explanation: str = "") -> None:
        formatted_explanation = "" if not explanation else f" ({explanation})"
        message = f"{source!s} does not contain an element '{name}'{formatted_explanation}"

        super().__init__(message)

    def __str__(self) -> str:
        # KeyError quotes its argument by default
        return str(self.args[0])
