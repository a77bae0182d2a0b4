"""Core building blocks: the document tree, formats, metadata and errors."""

from .errors import (
    ConversionError,
    ErrorKind,
    FormatError,
    MdExportError,
    ParseError,
    TemplateError,
    ValidationError,
)
from .formats import InputFormat, OutputFormat, detect_format
from .metadata import DocumentMetadata

__all__ = [
    "ConversionError",
    "DocumentMetadata",
    "ErrorKind",
    "FormatError",
    "InputFormat",
    "MdExportError",
    "OutputFormat",
    "ParseError",
    "TemplateError",
    "ValidationError",
    "detect_format",
]
