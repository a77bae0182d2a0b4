"""Document templates and the caller-owned registry that stores them.

HTML templates are Jinja2 documents receiving ``content``, ``title``,
``styles`` and ``meta`` (also available as ``CONTENT``, ``TITLE``, ``STYLES``
and ``META``). PDF templates are extra CSS appended after the print
stylesheet, and DOCX templates point at a ``.docx`` file whose styles the
output inherits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Iterator, Optional, Union

from mdexport.core.errors import TemplateError

__all__ = [
    "Template",
    "TemplateConfig",
    "TemplateRegistry",
    "TemplateType",
    "load_packaged_template",
]

logger = logging.getLogger(__name__)

_PACKAGE = "mdexport.templates"


class TemplateType(Enum):
    """Output formats that accept a caller template."""

    HTML = "html"
    PDF = "pdf"
    DOCX = "docx"

    @classmethod
    def from_value(cls, value: Union[str, "TemplateType"]) -> "TemplateType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        raise ValueError(f"Invalid template type: {value}")


@dataclass(frozen=True)
class TemplateConfig:
    """Caller-supplied description of a template to register."""

    id: str
    name: str
    type: Union[str, TemplateType]
    path: Union[str, Path]
    description: Optional[str] = None


@dataclass(frozen=True)
class Template:
    """A loaded template ready to hand to a renderer."""

    id: str
    name: str
    type: TemplateType
    path: Path
    content: str = ""
    description: Optional[str] = None


def load_packaged_template(filename: str) -> str:
    """Return the text of a template file shipped with mdexport."""

    try:
        resource = resources.files(_PACKAGE).joinpath(filename)
        return resource.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise TemplateError(
            f"Packaged template '{filename}' not found."
        ) from exc


def _default_html_template() -> Template:
    return Template(
        id="default-html",
        name="Default HTML Template",
        type=TemplateType.HTML,
        path=Path(str(resources.files(_PACKAGE).joinpath("default.html"))),
        content=load_packaged_template("default.html"),
    )


class TemplateRegistry:
    """Template store passed explicitly to conversions.

    Each caller (or test) owns its own instance; there is no module-level
    registry.
    """

    def __init__(self) -> None:
        self._templates: dict[str, Template] = {}

    def register(self, config: TemplateConfig) -> Template:
        logger.debug(
            "Registering template",
            extra={"template_id": config.id, "template_type": str(config.type)},
        )
        if not config.id or not isinstance(config.id, str):
            raise TemplateError("Template ID is required")
        if not config.name or not isinstance(config.name, str):
            raise TemplateError("Template name is required", config.id)
        try:
            template_type = TemplateType.from_value(config.type)
        except ValueError as exc:
            raise TemplateError(str(exc), config.id) from exc
        if not config.path or not isinstance(config.path, (str, Path)):
            raise TemplateError("Template path is required", config.id)

        path = Path(config.path).expanduser()
        if not path.is_file():
            raise TemplateError(f"Template file not found: {path}", config.id)

        content = ""
        if template_type is not TemplateType.DOCX:
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise TemplateError(
                    f"Failed to load template: {exc}", config.id, cause=exc
                ) from exc

        template = Template(
            id=config.id,
            name=config.name,
            type=template_type,
            path=path,
            content=content,
            description=config.description,
        )
        self._templates[config.id] = template
        return template

    def get(self, template_id: str) -> Optional[Template]:
        return self._templates.get(template_id)

    def has(self, template_id: str) -> bool:
        return template_id in self._templates

    def unregister(self, template_id: str) -> bool:
        logger.debug(
            "Unregistering template", extra={"template_id": template_id}
        )
        return self._templates.pop(template_id, None) is not None

    def list(self) -> list[Template]:
        return list(self._templates.values())

    def list_by_type(
        self, template_type: Union[str, TemplateType]
    ) -> list[Template]:
        wanted = TemplateType.from_value(template_type)
        return [item for item in self._templates.values() if item.type is wanted]

    def clear(self) -> None:
        self._templates.clear()

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[Template]:
        return iter(self.list())

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def resolve(
        self,
        template_id: Optional[str],
        target: Union[str, TemplateType],
    ) -> Optional[Template]:
        """Return the template to use for ``target``.

        Without an id, HTML gets the packaged default document and the other
        formats get ``None`` (their renderers carry built-in styling).
        """

        wanted = TemplateType.from_value(target)
        if template_id:
            template = self._templates.get(template_id)
            if template is None:
                raise TemplateError(
                    f"Template not found: {template_id}", template_id
                )
            if template.type is not wanted:
                raise TemplateError(
                    "Template type mismatch: expected "
                    f"{wanted.value}, got {template.type.value}",
                    template_id,
                )
            return template
        if wanted is TemplateType.HTML:
            return _default_html_template()
        return None
