"""Conversion orchestrator: validate, detect, parse once, render many."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence as AbcSequence
from collections.abc import Set as AbcSet
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Iterator,
    Mapping,
    Optional,
    Protocol,
    Union,
)

from mdexport.core.errors import (
    ConversionError,
    FormatError,
    MdExportError,
    ParseError,
    ValidationError,
)
from mdexport.core.formats import InputFormat, OutputFormat, detect_format
from mdexport.core.metadata import DocumentMetadata
from mdexport.core.tree import Root, count_nodes
from mdexport.parsers import (
    ExtractedMarkup,
    ExtractedText,
    extract_docx_markup,
    extract_pdf_text,
    parse_docx,
    parse_html,
    parse_markdown,
    parse_pdf,
)
from mdexport.renderers import (
    RenderOptions,
    RenderSettings,
    render_docx,
    render_html,
    render_markdown,
    render_pdf,
)
from mdexport.renderers.base import conversion_failure
from mdexport.templates import Template, TemplateRegistry

__all__ = [
    "BinaryCodecs",
    "Conversion",
    "ConversionResult",
    "ConversionStage",
    "DEFAULT_RENDERERS",
    "convert",
    "convert_async",
    "convert_to",
    "convert_to_docx",
    "convert_to_html",
    "convert_to_markdown",
    "convert_to_pdf",
]

Source = Union[str, bytes, bytearray, memoryview]
Artifact = Union[str, bytes]
Renderer = Callable[[Root, RenderOptions], Artifact]

DEFAULT_RENDERERS: Mapping[OutputFormat, Renderer] = {
    OutputFormat.MARKDOWN: render_markdown,
    OutputFormat.HTML: render_html,
    OutputFormat.PDF: render_pdf,
    OutputFormat.DOCX: render_docx,
}

_VALID_INPUT_FORMATS = ", ".join(member.value for member in InputFormat)


class ConversionStage(Enum):
    """Lifecycle of a single conversion call."""

    VALIDATING = "validating"
    DETECTING_FORMAT = "detecting-format"
    PARSING = "parsing"
    RENDERING = "rendering"
    DONE = "done"
    ERRORED = "errored"


class TemplateResolver(Protocol):
    def resolve(
        self, template_id: Optional[str], target: str
    ) -> Optional[Template]:
        ...


@dataclass(frozen=True)
class BinaryCodecs:
    """Callable seams for extracting content from binary inputs."""

    pdf: Callable[[bytes], ExtractedText] = extract_pdf_text
    docx: Callable[[bytes], ExtractedMarkup] = extract_docx_markup


@dataclass(frozen=True)
class _Request:
    source: Union[str, bytes]
    formats: tuple[OutputFormat, ...]
    input_format: Optional[InputFormat]
    template_id: Optional[str]
    metadata: Optional[DocumentMetadata]


class ConversionResult(Mapping[str, Artifact]):
    """Artifacts keyed by output format value, in request order."""

    def __init__(self, artifacts: Mapping[OutputFormat, Artifact]) -> None:
        self._artifacts: dict[str, Artifact] = {
            fmt.value: artifact for fmt, artifact in artifacts.items()
        }

    def __getitem__(self, key: Union[str, OutputFormat]) -> Artifact:
        if isinstance(key, OutputFormat):
            key = key.value
        return self._artifacts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._artifacts)

    def __len__(self) -> int:
        return len(self._artifacts)

    def __repr__(self) -> str:
        sizes = {key: len(value) for key, value in self._artifacts.items()}
        return f"ConversionResult({sizes!r})"

    @property
    def md(self) -> Optional[str]:
        return self._artifacts.get("md")  # type: ignore[return-value]

    @property
    def html(self) -> Optional[str]:
        return self._artifacts.get("html")  # type: ignore[return-value]

    @property
    def pdf(self) -> Optional[bytes]:
        return self._artifacts.get("pdf")  # type: ignore[return-value]

    @property
    def docx(self) -> Optional[bytes]:
        return self._artifacts.get("docx")  # type: ignore[return-value]


@dataclass
class Conversion:
    """One conversion request and the stage it has reached.

    Validation runs before anything else. The parsed tree is shared
    read-only by every renderer; renderers run concurrently in worker
    threads and the first failure propagates (siblings are not cancelled).
    """

    source: Any
    formats: Any
    input_format: Any = None
    template_id: Any = None
    metadata: Any = None
    templates: Optional[TemplateResolver] = None
    settings: RenderSettings = field(default_factory=RenderSettings)
    codecs: BinaryCodecs = field(default_factory=BinaryCodecs)
    renderers: Mapping[OutputFormat, Renderer] = field(
        default_factory=lambda: dict(DEFAULT_RENDERERS)
    )
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("mdexport.converter")
    )
    stage: ConversionStage = ConversionStage.VALIDATING
    tree: Optional[Root] = None

    def __post_init__(self) -> None:
        if self.templates is None:
            self.templates = TemplateRegistry()

    async def run(self) -> ConversionResult:
        try:
            self._advance(ConversionStage.VALIDATING)
            request = self._validate()

            input_format = request.input_format
            if input_format is None:
                self._advance(ConversionStage.DETECTING_FORMAT)
                input_format = detect_format(request.source)

            self._advance(ConversionStage.PARSING)
            self._require_binary(request.source, input_format)
            self.logger.debug(
                "Starting conversion",
                extra={
                    "input_format": input_format.value,
                    "formats": [fmt.value for fmt in request.formats],
                },
            )
            tree = await asyncio.to_thread(
                self._parse, request.source, input_format
            )
            self.tree = tree

            self._advance(ConversionStage.RENDERING)
            artifacts = await asyncio.gather(
                *(self._render(tree, fmt, request) for fmt in request.formats)
            )
            result = ConversionResult(dict(zip(request.formats, artifacts)))
        except MdExportError:
            self._advance(ConversionStage.ERRORED)
            raise
        self._advance(ConversionStage.DONE)
        self.logger.debug(
            "Conversion complete", extra={"formats": list(result.keys())}
        )
        return result

    def _advance(self, stage: ConversionStage) -> None:
        self.stage = stage
        self.logger.debug(
            "Conversion stage changed", extra={"stage": stage.value}
        )

    def _validate(self) -> _Request:
        source = self.source
        if source is None:
            raise ValidationError("Input is required", "input")
        if isinstance(source, (bytearray, memoryview)):
            source = bytes(source)
        if not isinstance(source, (str, bytes)):
            raise ValidationError("Input must be a string or bytes", "input")

        formats = self.formats
        if (
            formats is None
            or isinstance(formats, (str, bytes))
            or not isinstance(formats, (AbcSequence, AbcSet))
        ):
            raise ValidationError(
                "Format must be a sequence of output formats", "format"
            )
        if not formats:
            raise ValidationError(
                "At least one output format is required", "format"
            )
        resolved: list[OutputFormat] = []
        for value in formats:
            try:
                fmt = OutputFormat.from_value(value)
            except ValueError:
                raise FormatError(value) from None
            if fmt not in resolved:
                resolved.append(fmt)

        input_format: Optional[InputFormat] = None
        if self.input_format is not None:
            try:
                input_format = InputFormat.from_value(self.input_format)
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid input format: {self.input_format}. "
                    f"Valid formats: {_VALID_INPUT_FORMATS}",
                    "input_format",
                    cause=exc,
                ) from exc

        if self.metadata is not None and not isinstance(
            self.metadata, Mapping
        ):
            raise ValidationError("Metadata must be a mapping", "metadata")
        if self.template_id is not None and not isinstance(
            self.template_id, str
        ):
            raise ValidationError(
                "Template id must be a string", "template_id"
            )

        return _Request(
            source=source,
            formats=tuple(resolved),
            input_format=input_format,
            template_id=self.template_id or None,
            metadata=DocumentMetadata.from_value(self.metadata),
        )

    @staticmethod
    def _require_binary(
        source: Union[str, bytes], input_format: InputFormat
    ) -> None:
        if input_format.is_binary and not isinstance(source, bytes):
            label = input_format.value.upper()
            raise ValidationError(
                f"{label} input must be bytes (binary input required)",
                "input",
            )

    def _parse(self, source: Union[str, bytes], input_format: InputFormat) -> Root:
        try:
            if input_format is InputFormat.PDF:
                tree = parse_pdf(source, extract=self.codecs.pdf)
            elif input_format is InputFormat.DOCX:
                tree = parse_docx(source, extract=self.codecs.docx)
            else:
                text = (
                    source.decode("utf-8", errors="replace")
                    if isinstance(source, bytes)
                    else source
                )
                if input_format is InputFormat.HTML:
                    tree = parse_html(text)
                else:
                    tree = parse_markdown(text)
        except MdExportError:
            raise
        except Exception as exc:
            raise ParseError(
                f"Failed to parse {input_format.value} input: {exc}",
                cause=exc,
            ) from exc
        self.logger.debug(
            "Parsed input",
            extra={
                "input_format": input_format.value,
                "node_count": count_nodes(tree),
            },
        )
        return tree

    async def _render(
        self, tree: Root, fmt: OutputFormat, request: _Request
    ) -> Artifact:
        try:
            template = None
            if fmt is not OutputFormat.MARKDOWN:
                template = self.templates.resolve(  # type: ignore[union-attr]
                    request.template_id, fmt.value
                )
            options = RenderOptions(
                metadata=request.metadata,
                template=template,
                settings=self.settings,
            )
            renderer = self.renderers[fmt]
            self.logger.debug("Rendering", extra={"format": fmt.value})
            artifact = await asyncio.to_thread(renderer, tree, options)
        except MdExportError:
            self.logger.error(
                "Failed to convert", extra={"format": fmt.value}
            )
            raise
        except Exception as exc:
            self.logger.error(
                "Failed to convert", extra={"format": fmt.value}
            )
            raise conversion_failure(fmt.value, exc) from exc
        self.logger.debug(
            "Rendered",
            extra={"format": fmt.value, "size": len(artifact)},
        )
        return artifact


async def convert_async(
    source: Source,
    formats: Any,
    *,
    input_format: Union[str, InputFormat, None] = None,
    template_id: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
    templates: Optional[TemplateResolver] = None,
    settings: Optional[RenderSettings] = None,
    codecs: Optional[BinaryCodecs] = None,
    renderers: Optional[Mapping[OutputFormat, Renderer]] = None,
    logger: Optional[logging.Logger] = None,
) -> ConversionResult:
    """Convert ``source`` into every format in ``formats``."""

    conversion = Conversion(
        source=source,
        formats=formats,
        input_format=input_format,
        template_id=template_id,
        metadata=metadata,
        templates=templates,
    )
    if settings is not None:
        conversion.settings = settings
    if codecs is not None:
        conversion.codecs = codecs
    if renderers is not None:
        conversion.renderers = {**DEFAULT_RENDERERS, **renderers}
    if logger is not None:
        conversion.logger = logger
    return await conversion.run()


def convert(source: Source, formats: Any, **kwargs: Any) -> ConversionResult:
    """Synchronous wrapper around :func:`convert_async`.

    Must not be called from a running event loop; use
    :func:`convert_async` there instead.
    """

    return asyncio.run(convert_async(source, formats, **kwargs))


def convert_to(
    source: Source, fmt: Union[str, OutputFormat], **kwargs: Any
) -> Artifact:
    """Convert to a single format and return the bare artifact."""

    result = convert(source, [fmt], **kwargs)
    key = fmt.value if isinstance(fmt, OutputFormat) else str(fmt).strip().lower()
    output = result.get(key)
    if output is None:
        raise ConversionError(f"Conversion to {key} failed", key)
    return output


def convert_to_markdown(source: Source, **kwargs: Any) -> str:
    return convert_to(source, OutputFormat.MARKDOWN, **kwargs)  # type: ignore[return-value]


def convert_to_html(source: Source, **kwargs: Any) -> str:
    return convert_to(source, OutputFormat.HTML, **kwargs)  # type: ignore[return-value]


def convert_to_pdf(source: Source, **kwargs: Any) -> bytes:
    return convert_to(source, OutputFormat.PDF, **kwargs)  # type: ignore[return-value]


def convert_to_docx(source: Source, **kwargs: Any) -> bytes:
    return convert_to(source, OutputFormat.DOCX, **kwargs)  # type: ignore[return-value]
