"""Template loading for prompt construction."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

TEMPLATES_PATH = Path(__file__).parent / "templates"

# Pattern for {{ variable }} substitution
_VAR_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass
class PromptTemplate:
    """A loaded prompt template.

    Attributes:
        name: Template name.
        description: Human-readable purpose.
        user: Prompt body with ``{{ variable }}`` placeholders.
        instructions: Named instruction fragments (filter template only).
    """

    name: str
    description: str
    user: str
    instructions: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], name: str) -> PromptTemplate:
        return cls(
            name=data.get("name", name),
            description=data.get("description", ""),
            user=data.get("user", ""),
            instructions={str(k): str(v) for k, v in (data.get("instructions") or {}).items()},
        )


class TemplateNotFoundError(Exception):
    """Raised when a template file cannot be found."""

    def __init__(self, template_name: str, path: Path) -> None:
        self.template_name = template_name
        self.path = path
        super().__init__(f"Template not found: {template_name} at {path}")


class TemplateParseError(Exception):
    """Raised when a template file cannot be parsed."""

    def __init__(self, template_name: str, reason: str) -> None:
        self.template_name = template_name
        self.reason = reason
        super().__init__(f"Failed to parse template '{template_name}': {reason}")


class PromptLoader:
    """Load prompt templates from YAML files, caching each after first read.

    Attributes:
        templates_path: Directory holding ``<name>.yaml`` templates.
    """

    def __init__(self, templates_path: Path = TEMPLATES_PATH) -> None:
        self.templates_path = templates_path
        self._yaml = YAML(typ="safe")
        self._cache: dict[str, PromptTemplate] = {}

    def _get_template_path(self, template_name: str) -> Path:
        return self.templates_path / f"{template_name}.yaml"

    def load(self, template_name: str) -> PromptTemplate:
        """Load a template by name.

        Raises:
            TemplateNotFoundError: If the template file doesn't exist.
            TemplateParseError: If the template cannot be parsed.
        """
        if template_name in self._cache:
            return self._cache[template_name]

        path = self._get_template_path(template_name)
        if not path.exists():
            raise TemplateNotFoundError(template_name, path)

        try:
            with path.open("r", encoding="utf-8") as f:
                data = self._yaml.load(f)
        except Exception as e:
            raise TemplateParseError(template_name, str(e)) from e

        if not isinstance(data, dict):
            raise TemplateParseError(template_name, "Expected a mapping at top level")

        template = PromptTemplate.from_dict(data, template_name)
        self._cache[template_name] = template
        return template

    def list_templates(self) -> list[str]:
        if not self.templates_path.exists():
            return []
        return sorted(p.stem for p in self.templates_path.glob("*.yaml") if p.is_file())

    def clear_cache(self) -> None:
        self._cache.clear()


def substitute(text: str, context: dict[str, str]) -> str:
    """Replace ``{{ name }}`` placeholders from ``context``.

    Unknown names are left as-is. Substituted values are not rescanned, so
    user text containing braces passes through untouched.
    """

    def replace_match(match: re.Match[str]) -> str:
        name = match.group(1)
        return context.get(name, match.group(0))

    return _VAR_PATTERN.sub(replace_match, text)
