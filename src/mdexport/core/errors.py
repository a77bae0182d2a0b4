"""Error taxonomy shared by every mdexport stage."""

from __future__ import annotations

from enum import Enum
from typing import Optional

__all__ = [
    "ConversionError",
    "ErrorKind",
    "FormatError",
    "MdExportError",
    "ParseError",
    "TemplateError",
    "ValidationError",
]


class ErrorKind(Enum):
    """Closed set of failure kinds with their stable codes."""

    VALIDATION = "VALIDATION_ERROR"
    FORMAT = "FORMAT_ERROR"
    PARSE = "PARSE_ERROR"
    CONVERSION = "CONVERSION_ERROR"

    @property
    def code(self) -> str:
        return self.value


class MdExportError(RuntimeError):
    """Base class for failures surfaced by the public API.

    Every instance carries a :class:`ErrorKind` so callers can switch on
    ``error.kind`` (or the string ``error.code``) instead of checking
    subclasses.
    """

    kind: ErrorKind = ErrorKind.CONVERSION

    def __init__(
        self, message: str, *, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        return self.kind.code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code}: {self.message!r})"


class ValidationError(MdExportError):
    """Raised when call arguments are malformed."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.field = field


class TemplateError(ValidationError):
    """Raised when a template id cannot be resolved or registered."""

    def __init__(
        self,
        message: str,
        template_id: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, "template_id", cause=cause)
        self.template_id = template_id


class FormatError(MdExportError):
    """Raised when a requested output format is not supported."""

    kind = ErrorKind.FORMAT

    def __init__(self, value: object) -> None:
        super().__init__(f'Invalid output format: "{value}"')
        self.invalid_format = value


class ParseError(MdExportError):
    """Raised when input cannot be turned into a document tree."""

    kind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        position: Optional[tuple[int, int]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.position = position

    @property
    def line(self) -> Optional[int]:
        return self.position[0] if self.position else None

    @property
    def column(self) -> Optional[int]:
        return self.position[1] if self.position else None


class ConversionError(MdExportError):
    """Raised when a renderer fails for a specific output format."""

    kind = ErrorKind.CONVERSION

    def __init__(
        self,
        message: str,
        format: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.format = format
