"""Convert documents between text, Markdown, HTML, PDF and DOCX."""

from mdexport.converter import (
    BinaryCodecs,
    Conversion,
    ConversionResult,
    ConversionStage,
    convert,
    convert_async,
    convert_to,
    convert_to_docx,
    convert_to_html,
    convert_to_markdown,
    convert_to_pdf,
)
from mdexport.core import (
    ConversionError,
    DocumentMetadata,
    ErrorKind,
    FormatError,
    InputFormat,
    MdExportError,
    OutputFormat,
    ParseError,
    TemplateError,
    ValidationError,
    detect_format,
)
from mdexport.renderers import RenderSettings
from mdexport.templates import Template, TemplateConfig, TemplateRegistry

__all__ = [
    "BinaryCodecs",
    "Conversion",
    "ConversionError",
    "ConversionResult",
    "ConversionStage",
    "DocumentMetadata",
    "ErrorKind",
    "FormatError",
    "InputFormat",
    "MdExportError",
    "OutputFormat",
    "ParseError",
    "RenderSettings",
    "Template",
    "TemplateConfig",
    "TemplateError",
    "TemplateRegistry",
    "ValidationError",
    "convert",
    "convert_async",
    "convert_to",
    "convert_to_docx",
    "convert_to_html",
    "convert_to_markdown",
    "convert_to_pdf",
    "detect_format",
]
