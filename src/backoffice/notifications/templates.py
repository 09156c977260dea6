"""Title/message templates for notifications, loaded from YAML."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATES_PATH = Path(__file__).resolve().parents[3] / "config" / "notification_templates.yml"


class NotificationTemplate(BaseModel):
    id: str
    title: str
    message: str


_BUILTIN_TEMPLATES: dict[str, NotificationTemplate] = {
    t.id: t
    for t in (
        NotificationTemplate(
            id="order",
            title="New Order Received",
            message="Order {order_id} from {customer} - {amount}",
        ),
        NotificationTemplate(id="review", title="New Review Submitted", message="{summary}"),
        NotificationTemplate(id="question", title="New Question Needs Answer", message="{question}"),
        NotificationTemplate(id="lead", title="New B2B Lead", message="{buyer} enquired about {products}"),
        NotificationTemplate(
            id="lead_bulk",
            title="New Bulk RFQ",
            message="{buyer} requested quotes for {products}",
        ),
    )
}


class TemplateSet:
    """Built-in templates overridden by any found in the YAML file."""

    def __init__(self, templates_path: str | Path | None = None) -> None:
        self._templates = dict(_BUILTIN_TEMPLATES)
        self._load(Path(templates_path) if templates_path else _DEFAULT_TEMPLATES_PATH)

    def _load(self, path: Path) -> None:
        if not path.exists():
            return
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        for tmpl_id, tmpl_data in (data.get("templates") or {}).items():
            builtin = self._templates.get(tmpl_id)
            self._templates[tmpl_id] = NotificationTemplate(
                id=tmpl_id,
                title=tmpl_data.get("title", builtin.title if builtin else ""),
                message=tmpl_data.get("message", builtin.message if builtin else ""),
            )
        logger.debug("Loaded notification templates from %s", path)

    @property
    def templates(self) -> dict[str, NotificationTemplate]:
        return dict(self._templates)

    def render(self, template_id: str, context: dict[str, Any]) -> tuple[str, str]:
        """Return ``(title, message)`` for ``template_id``."""
        template = self._templates.get(template_id)
        if template is None:
            return template_id.replace("_", " ").title(), ""
        return _render(template.title, context), _render(template.message, context)


def _render(template_str: str, context: dict[str, Any]) -> str:
    """Single-pass ``{key}`` substitution; unknown placeholders are kept."""
    str_context = {k: str(v) for k, v in context.items()}

    def _replace(m: re.Match) -> str:
        return str_context.get(m.group(1), m.group(0))

    return re.sub(r"\{(\w+)\}", _replace, template_str)
