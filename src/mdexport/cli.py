"""CLI entry point for mdexport."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence, Union

from mdexport.converter import ConversionResult, convert
from mdexport.core.config import (
    CONFIG_FILENAME,
    ConfigError,
    ConfigOverrides,
    LoadResult,
    load_config,
    write_config_template,
)
from mdexport.core.errors import MdExportError
from mdexport.core.formats import InputFormat, detect_format
from mdexport.core.logging import LOGGER_NAME, configure_logger
from mdexport.templates import TemplateConfig, TemplateRegistry

_SUFFIX_FORMATS = {
    ".md": InputFormat.MARKDOWN,
    ".markdown": InputFormat.MARKDOWN,
    ".txt": InputFormat.TEXT,
    ".text": InputFormat.TEXT,
    ".html": InputFormat.HTML,
    ".htm": InputFormat.HTML,
    ".pdf": InputFormat.PDF,
    ".docx": InputFormat.DOCX,
}
_TEMPLATE_SUFFIX_TYPES = {
    ".html": "html",
    ".htm": "html",
    ".css": "pdf",
    ".docx": "docx",
}
_DEFAULT_NAME = "document"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdexport",
        description=(
            "Convert text, Markdown, HTML, PDF or DOCX input into Markdown, "
            "HTML, PDF and DOCX outputs."
        ),
        epilog=(
            "Other commands: `mdexport detect INPUT` prints the detected "
            "input format; `mdexport config init` writes mdexport.toml."
        ),
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Input file path or literal document text.",
    )
    parser.add_argument(
        "-f",
        "--formats",
        help="Comma-separated output formats: md, html, pdf, docx.",
    )
    parser.add_argument(
        "-i",
        "--input-format",
        choices=[member.value for member in InputFormat],
        help="Skip detection and parse the input as this format.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for generated files (defaults to the current one).",
    )
    parser.add_argument(
        "-n",
        "--name",
        help="Base name for output files (defaults to the input file stem).",
    )
    parser.add_argument(
        "-t",
        "--template",
        dest="template_id",
        help="Id of a registered template to apply.",
    )
    parser.add_argument(
        "--template-file",
        action="append",
        type=Path,
        default=[],
        help=(
            "Register a template file; its id is the file stem. Repeatable. "
            ".html/.htm are HTML documents, .css is PDF styling and .docx a "
            "Word template."
        ),
    )
    parser.add_argument("--title", help="Document title metadata.")
    parser.add_argument("--author", help="Document author metadata.")
    parser.add_argument("--description", help="Document description metadata.")
    parser.add_argument(
        "--stdin",
        action="store_true",
        help="Read the document from standard input.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"Path to a TOML config file (defaults to ./{CONFIG_FILENAME}).",
    )
    parser.add_argument("--paper-size", help="PDF paper size (letter, a4, legal, a5).")
    parser.add_argument(
        "--orientation",
        choices=["portrait", "landscape"],
        help="PDF page orientation.",
    )
    parser.add_argument("--margin", help="PDF margin as CSS shorthand, e.g. '1in'.")
    parser.add_argument("--log-dir", type=Path, help="Write JSON logs here.")
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo debug logs to stderr.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])

    if args_list[:1] == ["config"]:
        return _handle_config(args_list[1:])
    if args_list[:1] == ["detect"]:
        return _handle_detect(args_list[1:])
    if args_list[:1] == ["convert"]:
        args_list = args_list[1:]

    parser = _build_parser()
    args = parser.parse_args(args_list)

    if args.stdin and args.input is not None:
        parser.error("INPUT and --stdin are mutually exclusive.")
    if not args.stdin and args.input is None:
        parser.error("an INPUT path or text is required (or use --stdin).")

    overrides = ConfigOverrides(
        formats=_split_formats(args.formats),
        paper_size=args.paper_size,
        orientation=args.orientation,
        margin=args.margin,
        log_level=args.log_level,
    )
    try:
        load_result = load_config(config_path=args.config, overrides=overrides)
    except ConfigError as exc:
        parser.error(str(exc))

    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=args.log_dir,
        level=load_result.config.log_level,
        verbose=args.verbose,
    )
    logger.debug("mdexport CLI invoked")

    source, source_path = _read_source(args)
    input_format = args.input_format or _format_from_path(source_path)
    name = args.name or (source_path.stem if source_path else _DEFAULT_NAME)

    try:
        registry = _build_registry(args.template_file)
        result = convert(
            source,
            list(load_result.config.formats),
            input_format=input_format,
            template_id=args.template_id,
            metadata=_metadata_from_args(args),
            templates=registry,
            settings=load_result.config.render,
            logger=logger,
        )
    except MdExportError as exc:
        logger.error(
            "Conversion failed", extra={"code": exc.code, "error": exc.message}
        )
        sys.stderr.write(f"error [{exc.code}]: {exc.message}\n")
        return 1

    try:
        written = _write_outputs(result, args.output_dir, name)
    except OSError as exc:
        sys.stderr.write(f"Failed to write outputs: {exc}\n")
        return 1

    _print_summary(written, load_result, log_path)
    return 0


def _split_formats(raw: Optional[str]) -> Optional[list[str]]:
    if raw is None:
        return None
    parts = [part for part in raw.replace(",", " ").split() if part]
    return parts or None


def _read_source(args: argparse.Namespace) -> tuple[Union[str, bytes], Optional[Path]]:
    if args.stdin:
        return sys.stdin.read(), None
    candidate = Path(args.input).expanduser()
    try:
        is_file = candidate.is_file()
    except OSError:
        # Long literal text can exceed the OS path length limit.
        is_file = False
    if not is_file:
        return args.input, None
    fmt = _SUFFIX_FORMATS.get(candidate.suffix.lower())
    if fmt is not None and fmt.is_binary:
        return candidate.read_bytes(), candidate
    return candidate.read_text(encoding="utf-8", errors="replace"), candidate


def _format_from_path(path: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    fmt = _SUFFIX_FORMATS.get(path.suffix.lower())
    return fmt.value if fmt is not None else None


def _build_registry(paths: Sequence[Path]) -> TemplateRegistry:
    registry = TemplateRegistry()
    for path in paths:
        registry.register(
            TemplateConfig(
                id=path.stem,
                name=path.stem,
                type=_TEMPLATE_SUFFIX_TYPES.get(path.suffix.lower(), "html"),
                path=path,
            )
        )
    return registry


def _metadata_from_args(args: argparse.Namespace) -> Optional[dict[str, str]]:
    metadata = {
        key: value
        for key, value in (
            ("title", args.title),
            ("author", args.author),
            ("description", args.description),
        )
        if value
    }
    return metadata or None


def _write_outputs(
    result: ConversionResult, output_dir: Path, name: str
) -> list[Path]:
    output_dir = output_dir.expanduser()
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for key, artifact in result.items():
        target = output_dir / f"{name}.{key}"
        if isinstance(artifact, bytes):
            target.write_bytes(artifact)
        else:
            target.write_text(artifact, encoding="utf-8")
        written.append(target)
    return written


def _print_summary(
    written: Sequence[Path], load_result: LoadResult, log_path: Optional[Path]
) -> None:
    lines = ["mdexport summary:"]
    lines.extend(f"  wrote: {path}" for path in written)
    lines.append(f"  config: {load_result.config_path or 'defaults'}")
    if log_path is not None:
        lines.append(f"  log file: {log_path}")
    sys.stdout.write("\n".join(lines) + "\n")


def _handle_detect(argv: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="mdexport detect",
        description="Print the input format mdexport would detect.",
    )
    parser.add_argument("input", help="Input file path or literal text.")
    args = parser.parse_args(argv)
    args.stdin = False
    source, _ = _read_source(args)
    sys.stdout.write(f"{detect_format(source).value}\n")
    return 0


def _handle_config(argv: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="mdexport config",
        description="Manage mdexport configuration files.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    init_parser = subparsers.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template."
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help=f"Destination for the config TOML (defaults to ./{CONFIG_FILENAME}).",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    args = parser.parse_args(argv)

    target = args.path if args.path is not None else Path(CONFIG_FILENAME)
    try:
        written = write_config_template(target, overwrite=args.force)
    except ConfigError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    sys.stdout.write(f"Wrote mdexport config to {written}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
