"""
DailyEntry -> markdown writer.

Produces the canonical form: newest day first, one blank line between
blocks and sections. Hand-edited files can have any structure; the parser
reads them, and the next write normalizes them.

Pure functions - no I/O.
"""

from datetime import date

from .entry import DailyEntry, Section, SectionType
from .parser import parse
from .tasks import Task, checkbox_title, find_task, is_placeholder_checkbox


def write(entries: list[DailyEntry]) -> str:
    """Serialize entries, sorted newest first."""
    if not entries:
        return ""
    ordered = sorted(entries, key=lambda e: e.date, reverse=True)
    return "\n\n".join(write_day(entry) for entry in ordered)


def write_day(entry: DailyEntry) -> str:
    """Serialize a single day block (no trailing newline)."""
    lines = [f"# {entry.date.isoformat()} {entry.day_of_week}", ""]

    if entry.sections:
        for section in entry.sections:
            lines.extend(_section_lines(section, entry.tasks))
    else:
        lines.extend(_legacy_lines(entry))

    return "\n".join(lines).rstrip()


def append_day(markdown: str, entry: DailyEntry) -> str:
    """Add an entry to a document. The whole document is re-serialized."""
    entries = parse(markdown)
    entries.append(entry)
    return write(entries)


def update_day(markdown: str, entry: DailyEntry) -> str:
    """Replace the entry with the same date, or add it if missing."""
    entries = parse(markdown)
    for i, existing in enumerate(entries):
        if existing.date == entry.date:
            entries[i] = entry
            break
    else:
        entries.append(entry)
    return write(entries)


def remove_day(markdown: str, target: date) -> str:
    """Drop every entry dated target."""
    return write([e for e in parse(markdown) if e.date != target])


def _section_lines(section: Section, tasks: list[Task]) -> list[str]:
    lines = [f"## {section.name}"]

    if section.type is SectionType.TEXT:
        if section.items:
            lines.append("\n".join(section.items))
        lines.append("")
        return lines

    for item in section.items:
        if item.strip().startswith("- ["):
            # Live task state wins over the stored line
            task = find_task(tasks, checkbox_title(item))
            if task is not None:
                lines.append(task.to_line())
            elif not is_placeholder_checkbox(item):
                lines.append(item)
            continue

        if not item.strip():
            continue

        # Items are stored without their marker
        lines.append(f"- {item}")

    lines.append("")
    return lines


def _legacy_lines(entry: DailyEntry) -> list[str]:
    """Layout for entries built without explicit sections."""
    lines = []
    if entry.tasks:
        lines.append("## Tasks")
        lines.extend(task.to_line() for task in entry.tasks)
        lines.append("")

    if entry.goals:
        lines.append("## Goals")
        lines.extend(f"- {goal}" for goal in entry.goals)
        lines.append("")

    if entry.notes:
        lines.append("## Notes")
        lines.extend(f"- {note}" for note in entry.notes)
        lines.append("")

    if entry.reflections:
        lines.append("## Reflections")
        lines.append(entry.reflections)
        lines.append("")
    return lines
