import pytest

from engagement.models.project import DeliverableTemplate, MilestoneTemplate
from engagement.services.definitions import (
    encode_definition, normalize_due_date, parse_definition, parse_milestone_templates
)


LEGACY_DESCRIPTION = """Build a landing page.

[SCOPE]
Two pages, responsive.

[MILESTONES]
[{"title": "Draft", "due": "10/01/2025", "deliverables": [{"name": "Wireframe", "required": true}]}]
"""


def test_embedded_sections_are_split_out():
    definition = parse_definition(LEGACY_DESCRIPTION)

    assert definition.summary == "Build a landing page."
    assert definition.scope == "Two pages, responsive."
    assert len(definition.milestones) == 1
    draft = definition.milestones[0]
    assert draft.title == "Draft"
    assert draft.due == "2025-10-01"
    assert draft.deliverables == [DeliverableTemplate(name="Wireframe", required=True)]


def test_plain_description_is_all_summary():
    definition = parse_definition("  Just a summary.  ")

    assert definition.summary == "Just a summary."
    assert definition.scope is None
    assert definition.milestones == []


def test_malformed_milestones_mean_no_milestones():
    definition = parse_definition("Summary\n\n[MILESTONES]\n[{\"title\": \"Draft\", ")

    assert definition.summary == "Summary"
    assert definition.milestones == []


def test_text_after_milestone_array_is_ignored():
    text = 'Summary\n[MILESTONES]\n[{"title": "Draft", "due": "2025-10-01"}]\nThanks!'

    definition = parse_definition(text)

    assert [m.title for m in definition.milestones] == ["Draft"]


def test_milestones_without_scope():
    definition = parse_definition('Summary\n[MILESTONES]\n[{"title": "A", "due": "2025-01-02"}]')

    assert definition.scope is None
    assert definition.milestones[0].due == "2025-01-02"


def test_unusable_entries_are_skipped():
    templates = parse_milestone_templates([
        {"title": "Good", "due": "01/15/2026"},
        {"title": "", "due": "01/15/2026"},
        {"title": "No date"},
        {"title": "Bad date", "due": "next tuesday"},
        "not an object",
    ])

    assert [t.title for t in templates] == ["Good"]
    assert templates[0].due == "2026-01-15"


def test_bad_deliverables_keep_their_milestone():
    templates = parse_milestone_templates([
        {"title": "Draft", "due": "2026-01-15", "deliverables": ["Wireframe", {"name": "Mockup"}, {"required": True}]},
        {"title": "Final", "due": "2026-02-15", "deliverables": "Source"},
    ])

    assert [t.title for t in templates] == ["Draft", "Final"]
    assert templates[0].deliverables == [DeliverableTemplate(name="Mockup", required=True)]
    assert templates[1].deliverables == []


def test_template_lookup_by_title():
    definition = parse_definition(LEGACY_DESCRIPTION)

    assert definition.template_for("Draft").due == "2025-10-01"
    assert definition.template_for("Missing") is None


@pytest.mark.parametrize("raw, expected", [
    ("10/01/2025", "2025-10-01"),
    ("1/5/2025", "2025-01-05"),
    ("2025-10-01", "2025-10-01"),
    ("2025-10-01T12:30:00", "2025-10-01"),
])
def test_normalize_due_date(raw, expected):
    assert normalize_due_date(raw) == expected


@pytest.mark.parametrize("raw", ["", "13/45/2025", "soon"])
def test_normalize_due_date_rejects_garbage(raw):
    with pytest.raises(ValueError):
        normalize_due_date(raw)


def test_encoded_layout_parses_back():
    milestones = [MilestoneTemplate(title="Draft", due="2025-10-01",
                                    deliverables=[DeliverableTemplate(name="Wireframe")])]

    text = encode_definition("Summary", "Scope", milestones)
    definition = parse_definition(text)

    assert definition.summary == "Summary"
    assert definition.scope == "Scope"
    assert definition.milestones == milestones
