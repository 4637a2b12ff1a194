"""
Milestone progress calculation.

Progress is reported as an integer percentage. Submission alone tops out at
90; only an approved milestone reaches 100.
"""
import json
import math
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from engagement.models.milestone import MilestoneStatus, SubmissionNotes
from engagement.models.project import MilestoneTemplate

SUBMITTED_CEILING = 90


def parse_submission_notes(raw: Optional[str]) -> Optional[SubmissionNotes]:
    """
    Decode stored submission notes.

    Plain text (or JSON that is not a notes object) is kept as the ``text``
    part with no deliverables. Returns None when nothing was submitted.
    """
    if raw is None or not str(raw).strip():
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return SubmissionNotes(text=raw)
    if not isinstance(data, dict):
        return SubmissionNotes(text=raw)
    try:
        return SubmissionNotes.model_validate(data)
    except PydanticValidationError:
        return SubmissionNotes(text=data.get("text") if isinstance(data.get("text"), str) else raw)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def milestone_progress(status: str, submission_notes: Optional[str],
                       template: Optional[MilestoneTemplate] = None) -> int:
    """
    Completion percentage for a milestone.

    Args:
        status: Current MilestoneStatus value
        submission_notes: Stored JSON notes (may be None or plain text)
        template: The milestone's definition, supplying the expected deliverables

    Returns:
        100 when approved; 0 when open with nothing submitted; otherwise
        ``round(submitted / total * 90)`` where a deliverable counts once it has
        at least one file. Without a deliverable definition the result is a
        flat 90 for submitted milestones and 0 for anything else.
    """
    if status == MilestoneStatus.APPROVED:
        return 100

    notes = parse_submission_notes(submission_notes)
    if status != MilestoneStatus.SUBMITTED and notes is None:
        return 0

    total = len(template.deliverables) if template else 0
    if total == 0:
        return SUBMITTED_CEILING if status == MilestoneStatus.SUBMITTED else 0

    submitted = sum(1 for d in (notes.deliverables if notes else []) if d.files)
    submitted = min(submitted, total)
    return _round_half_up(submitted / total * SUBMITTED_CEILING)
