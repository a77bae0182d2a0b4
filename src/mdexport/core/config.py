"""TOML configuration for the mdexport command line."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from mdexport.core.formats import OutputFormat
from mdexport.renderers.base import RenderSettings
from mdexport.renderers.pdf import build_page_css

__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "ENV_PREFIX",
    "ConfigError",
    "ConfigOverrides",
    "ExportConfig",
    "LoadResult",
    "load_config",
    "load_toml",
    "merge_defaults",
    "read_config_template",
    "write_config_template",
]

CONFIG_FILENAME = "mdexport.toml"
CONFIG_ENV = "MDEXPORT_CONFIG"
ENV_PREFIX = "MDEXPORT_"
TEMPLATE_RESOURCE = "template.toml"

_DEFAULT_FORMATS: tuple[str, ...] = ("md",)
_DEFAULT_LOG_LEVEL = "INFO"


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ExportConfig:
    """Fully resolved configuration for a CLI run."""

    formats: tuple[OutputFormat, ...]
    render: RenderSettings
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    formats: Optional[Sequence[str]] = None
    paper_size: Optional[str] = None
    orientation: Optional[str] = None
    margin: Optional[str] = None
    highlight_style: Optional[str] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: ExportConfig
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults.

    Without an explicit path (argument or ``MDEXPORT_CONFIG``) the loader
    looks for ``mdexport.toml`` in ``cwd`` and silently uses built-in
    defaults when it is absent. An explicitly requested file must exist.
    """

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env
    default_path = (cwd or Path.cwd()) / CONFIG_FILENAME

    requested_path = _resolve_config_path(
        config_path=config_path, env_map=env_map, default_path=default_path
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        merge_defaults(table, load_toml(requested_path))
        loaded_path = requested_path
    elif config_path is not None or _parse_env_string(env_map, "CONFIG"):
        raise ConfigError(f"Config file not found: {requested_path}")

    pdf = table["pdf"]
    docx = table["docx"]

    formats = _normalize_formats(
        _pick_first(
            overrides.formats,
            _parse_env_list(env_map, "FORMATS"),
            table["conversion"]["formats"],
        )
    )
    paper_size = _require_string(
        _pick_first(
            overrides.paper_size,
            _parse_env_string(env_map, "PAPER_SIZE"),
            pdf["paper_size"],
        ),
        "pdf.paper_size",
    ).lower()
    orientation = _require_string(
        _pick_first(
            overrides.orientation,
            _parse_env_string(env_map, "ORIENTATION"),
            pdf["orientation"],
        ),
        "pdf.orientation",
    ).lower()
    margin = _require_string(
        _pick_first(
            overrides.margin,
            _parse_env_string(env_map, "MARGIN"),
            pdf["margin"],
        ),
        "pdf.margin",
    )
    try:
        build_page_css(
            paper_size=paper_size,
            orientation=orientation,
            margin_shorthand=margin,
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    highlight_style = _resolve_highlight_style(
        _pick_first(
            overrides.highlight_style,
            _parse_env_string(env_map, "HIGHLIGHT_STYLE"),
            pdf["highlight_style"],
        )
    )
    font_family = _require_string(docx["font_family"], "docx.font_family")
    margin_inches = _require_positive_number(
        docx["margin_inches"], "docx.margin_inches"
    )
    log_level = _require_string(
        _pick_first(
            overrides.log_level,
            _parse_env_string(env_map, "LOG_LEVEL"),
            table["logging"]["level"],
        ),
        "logging.level",
    ).upper()

    config = ExportConfig(
        formats=formats,
        render=RenderSettings(
            paper_size=paper_size,
            orientation=orientation,
            margin=margin,
            highlight_style=highlight_style,
            docx_font_family=font_family,
            docx_margin_inches=margin_inches,
        ),
        log_level=log_level,
    )
    return LoadResult(config=config, config_path=loaded_path)


# ------------- TOML helpers -------------


def load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config TOML: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Recursively merge ``override`` into ``base``, rejecting unknown keys."""

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise ConfigError(f"Unknown configuration key '{dotted}'.")
        if isinstance(base[key], MutableMapping):
            if not isinstance(value, Mapping):
                raise ConfigError(
                    f"Expected table for '{dotted}', "
                    f"found {type(value).__name__}."
                )
            merge_defaults(base[key], value, path=f"{dotted}.")
            continue
        base[key] = value


def read_config_template() -> str:
    resource = resources.files("mdexport.core").joinpath(TEMPLATE_RESOURCE)
    return resource.read_text(encoding="utf-8")


def write_config_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o644
) -> Path:
    """Write the packaged ``template.toml`` to ``path``."""

    path = path.expanduser()
    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(read_config_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


# ------------- Resolution -------------


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    defaults = RenderSettings()
    return {
        "conversion": {"formats": list(_DEFAULT_FORMATS)},
        "pdf": {
            "paper_size": defaults.paper_size,
            "orientation": defaults.orientation,
            "margin": defaults.margin,
            "highlight_style": defaults.highlight_style,
        },
        "docx": {
            "font_family": defaults.docx_font_family,
            "margin_inches": defaults.docx_margin_inches,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = _parse_env_string(env_map, "CONFIG")
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _normalize_formats(value: object) -> tuple[OutputFormat, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError("conversion.formats must be a list of strings.")
    result: list[OutputFormat] = []
    for item in value:
        try:
            fmt = OutputFormat.from_value(item)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        if fmt not in result:
            result.append(fmt)
    if not result:
        raise ConfigError("At least one output format must be configured.")
    return tuple(result)


def _resolve_highlight_style(value: object) -> str:
    style = _require_string(value, "pdf.highlight_style")
    try:
        get_style_by_name(style)
    except ClassNotFound as exc:
        raise ConfigError(f"Unknown Pygments style '{style}'.") from exc
    return style


def _require_string(value: object, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string.")
    return value.strip()


def _require_positive_number(value: object, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number.")
    if value <= 0:
        raise ConfigError(f"{key} must be greater than zero.")
    return float(value)


def _parse_env_list(env_map: Mapping[str, str], key: str) -> Optional[list[str]]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    parts = [part for part in raw.replace(",", " ").split() if part]
    return parts or None


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
