"""
Project definition parsing.

Older project rows carry their scope and milestone plan inside the free-text
description, appended after literal markers::

    Build a landing page.

    [SCOPE]
    Two pages, responsive.

    [MILESTONES]
    [{"title": "Draft", "due": "10/01/2025",
      "deliverables": [{"name": "Wireframe", "required": true}]}]

New projects store these as structured columns; ``parse_definition`` is used
once at creation time to lift any embedded sections into those columns, and as
a read-time fallback for rows that never had them.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from engagement.models.project import DeliverableTemplate, MilestoneTemplate

logger = logging.getLogger(__name__)

SCOPE_MARKER = "[SCOPE]"
MILESTONES_MARKER = "[MILESTONES]"

_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


@dataclass
class ProjectDefinition:
    summary: str
    scope: Optional[str] = None
    milestones: List[MilestoneTemplate] = field(default_factory=list)

    def template_for(self, title: str) -> Optional[MilestoneTemplate]:
        """First template whose title matches exactly."""
        for template in self.milestones:
            if template.title == title:
                return template
        return None


def normalize_due_date(value: str) -> str:
    """
    Return ``value`` as ``YYYY-MM-DD``.

    Accepts ``MM/DD/YYYY`` (as sent by the web form) or an ISO date, with or
    without a time part. Raises ``ValueError`` for anything else.
    """
    value = (value or "").strip()
    match = _US_DATE.match(value)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return datetime(year, month, day).date().isoformat()
    return datetime.fromisoformat(value[:10]).date().isoformat()


def _decode_milestones(raw: str) -> List[Any]:
    raw = raw.strip()
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        # Tolerate free text appended after the array
        try:
            data, _ = json.JSONDecoder().raw_decode(raw)
        except json.JSONDecodeError:
            logger.debug("Ignoring malformed milestone definition block")
            return []
    return data if isinstance(data, list) else []


def _usable_deliverables(raw: Any) -> List[DeliverableTemplate]:
    if not isinstance(raw, list):
        return []
    deliverables = []
    for entry in raw:
        try:
            deliverables.append(DeliverableTemplate.model_validate(entry))
        except PydanticValidationError:
            logger.debug("Skipping deliverable definition %r", entry)
    return deliverables


def parse_milestone_templates(items: List[Any]) -> List[MilestoneTemplate]:
    """
    Build templates from raw ``{title, due, deliverables}`` dicts.

    Entries without a title or with an unusable due date are skipped.
    Malformed deliverables are dropped without losing their milestone.
    """
    templates = []
    for item in items:
        if not isinstance(item, dict) or not item.get("title") or not item.get("due"):
            continue
        try:
            due = normalize_due_date(str(item["due"]))
            template = MilestoneTemplate.model_validate({
                **item,
                "due": due,
                "deliverables": _usable_deliverables(item.get("deliverables")),
            })
        except (ValueError, PydanticValidationError):
            logger.debug("Skipping milestone definition %r", item.get("title"))
            continue
        templates.append(template)
    return templates


def parse_definition(description: Optional[str]) -> ProjectDefinition:
    """
    Split a description into summary, scope and milestone templates.

    Everything before the first marker is the summary. Malformed milestone
    JSON means "no milestone definitions", never an error.
    """
    text = description or ""

    head, milestones_raw = text, ""
    index = text.find(MILESTONES_MARKER)
    if index != -1:
        head = text[:index]
        milestones_raw = text[index + len(MILESTONES_MARKER):]

    summary, scope = head, None
    index = head.find(SCOPE_MARKER)
    if index != -1:
        summary = head[:index]
        scope = head[index + len(SCOPE_MARKER):].strip() or None

    return ProjectDefinition(
        summary=summary.strip(),
        scope=scope,
        milestones=parse_milestone_templates(_decode_milestones(milestones_raw)),
    )


def encode_definition(summary: str, scope: Optional[str] = None,
                      milestones: Optional[List[MilestoneTemplate]] = None) -> str:
    """Inverse of ``parse_definition``, producing the legacy embedded layout."""
    text = summary
    if scope and scope.strip():
        text += f"\n\n{SCOPE_MARKER}\n{scope}"
    if milestones:
        text += f"\n\n{MILESTONES_MARKER}\n" + json.dumps([m.model_dump() for m in milestones])
    return text
