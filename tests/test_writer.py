"""Tests for the markdown writer and round-tripping through the parser."""

from datetime import date

import pytest

from dailychamp.core.entry import DailyEntry, Section, SectionType
from dailychamp.core.parser import parse
from dailychamp.core.tasks import Task
from dailychamp.core.writer import append_day, remove_day, update_day, write, write_day


@pytest.fixture
def sectioned_entry():
    design = Task("Design homepage", hours=2.0, completed=True)
    call = Task("Client call", hours=0.5)
    return DailyEntry(
        date=date(2026, 1, 5),
        tasks=[design, call],
        sections=[
            Section("Goals", ["Ship the redesign"], SectionType.LIST),
            Section("Work", [design.to_line(), call.to_line(), "Prep notes"], SectionType.TASKS),
            Section("Reflections", ["Solid day.", "", "More tomorrow."], SectionType.TEXT),
        ],
    )


CANONICAL = """# 2026-01-05 Monday

## Goals
- Ship the redesign

## Work
- [x] Design homepage | 2.0h
- [ ] Client call | 30m
- Prep notes

## Reflections
Solid day.

More tomorrow."""


class TestWriteDay:
    def test_canonical_layout(self, sectioned_entry):
        assert write_day(sectioned_entry) == CANONICAL

    def test_live_task_state_wins(self, sectioned_entry):
        sectioned_entry.tasks[1].toggle()
        sectioned_entry.tasks[1].hours = 1.5
        assert "- [x] Client call | 1.5h" in write_day(sectioned_entry)

    def test_placeholder_dropped(self):
        entry = DailyEntry(
            date=date(2026, 1, 5),
            sections=[Section("Work", ["- [ ] | 2.0h", "- [ ] Unmatched | 1h"], SectionType.TASKS)],
        )
        text = write_day(entry)
        assert "| 2.0h" not in text
        assert "- [ ] Unmatched | 1h" in text

    def test_blank_items_dropped_and_prefix_forced(self):
        entry = DailyEntry(
            date=date(2026, 1, 5),
            sections=[Section("Notes", ["one", "", "   ", "stray prose"])],
        )
        assert write_day(entry) == "# 2026-01-05 Monday\n\n## Notes\n- one\n- stray prose"

    def test_empty_text_section(self):
        entry = DailyEntry(
            date=date(2026, 1, 5), sections=[Section("Reflections", [], SectionType.TEXT)]
        )
        assert write_day(entry) == "# 2026-01-05 Monday\n\n## Reflections"

    def test_legacy_layout(self):
        entry = DailyEntry(
            date=date(2026, 1, 6),
            tasks=[Task("Run", hours=0.5, completed=True)],
            goals=["Stay fit"],
            notes=[],
            reflections="Tired.",
        )
        assert write_day(entry) == (
            "# 2026-01-06 Tuesday\n\n"
            "## Tasks\n- [x] Run | 30m\n\n"
            "## Goals\n- Stay fit\n\n"
            "## Reflections\nTired."
        )

    def test_header_only(self):
        assert write_day(DailyEntry(date=date(2026, 1, 4))) == "# 2026-01-04 Sunday"


class TestWrite:
    def test_newest_first(self):
        older = DailyEntry(date=date(2026, 1, 5))
        newer = DailyEntry(date=date(2026, 1, 7))
        text = write([older, newer])
        assert text.index("# 2026-01-07") < text.index("# 2026-01-05")

    def test_single_blank_line_between_days(self):
        text = write([DailyEntry(date=date(2026, 1, 5)), DailyEntry(date=date(2026, 1, 6))])
        assert text == "# 2026-01-06 Tuesday\n\n# 2026-01-05 Monday"

    def test_empty(self):
        assert write([]) == ""


class TestRoundTrip:
    def test_parse_write_parse(self, sectioned_entry):
        parsed = parse(write([sectioned_entry]))[0]
        assert parsed.date == sectioned_entry.date
        assert parsed.tasks == sectioned_entry.tasks
        assert [(s.name, s.type) for s in parsed.sections] == [
            (s.name, s.type) for s in sectioned_entry.sections
        ]
        assert parsed.goals == ["Ship the redesign"]
        assert parsed.reflections == "Solid day.\n\nMore tomorrow."

    def test_idempotent_on_canonical_text(self):
        text = write(parse(CANONICAL))
        assert text == CANONICAL
        assert write(parse(text)) == text

    def test_half_hour_survives_minutes_form(self):
        entry = DailyEntry(date=date(2026, 1, 5))
        entry.add_task(Task("Stretch", hours=0.5))
        text = write([entry])
        assert "| 30m" in text
        assert parse(text)[0].tasks[0].hours == pytest.approx(0.5)

    def test_hand_edited_file_is_normalized(self):
        messy = (
            "Journal\n\n# 2026-01-05 Monday\n\n\n## Work\n* star item\n"
            "- [X] Done | 60m\n\n---\n\n# 2026-01-07\n## Notes\n+ later\n"
        )
        assert write(parse(messy)) == (
            "# 2026-01-07 Wednesday\n\n## Notes\n- later\n\n"
            "# 2026-01-05 Monday\n\n## Work\n- star item\n- [x] Done | 1.0h"
        )

    def test_unrecognised_bracket_items_kept_verbatim(self):
        text = (
            "# 2026-01-05 Monday\n\n## Work\n"
            "- [ ] Write report | 2.0h\n- [-] Cancelled | 1h\n- [Design doc](https://x.test)"
        )
        assert write(parse(text)) == text


class TestDocumentEdits:
    def test_append_day(self):
        text = append_day(CANONICAL, DailyEntry(date=date(2026, 1, 6)))
        assert text.startswith("# 2026-01-06 Tuesday\n\n# 2026-01-05 Monday")

    def test_update_day_replaces(self):
        replacement = DailyEntry(
            date=date(2026, 1, 5), sections=[Section("Notes", ["replaced"])]
        )
        text = update_day(CANONICAL, replacement)
        assert text == "# 2026-01-05 Monday\n\n## Notes\n- replaced"

    def test_update_day_adds_missing(self):
        text = update_day(CANONICAL, DailyEntry(date=date(2026, 1, 4)))
        assert text.endswith("# 2026-01-04 Sunday")
        assert len(parse(text)) == 2

    def test_remove_day(self):
        text = append_day(CANONICAL, DailyEntry(date=date(2026, 1, 6)))
        assert remove_day(text, date(2026, 1, 5)) == "# 2026-01-06 Tuesday"
