"""
Markdown -> DailyEntry parser.

Parsing is semantic rather than positional: a line is classified by what it
looks like, not where it sits.

    # 2026-01-05 Monday

    ## Goals
    - **Primary goal** with emphasis

    ## Work
    - [ ] Task with [link](url) | 2.0h
    - Regular note
    1. Numbered item

    ## Reflections
    Free-form text, > quotes, ```code```, tables...

- Checkboxes are tasks wherever they appear.
- List items (-, *, +, 1.) are items of the open section.
- Anything else is free text.

Pure functions - no I/O, never raise on malformed input.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime

from .entry import DailyEntry, Section, SectionType, is_reflections
from .tasks import is_checkbox_line, parse_task_line

DAY_HEADER_RE = re.compile(r"^#\s+\d{4}-\d{2}-\d{2}")
_DATE_TOKEN_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$")
_SEPARATOR = "---"


def parse(markdown: str) -> list[DailyEntry]:
    """Parse a whole document into entries, in document order."""
    entries = []
    for block in split_day_blocks(markdown):
        entry = _parse_block(block)
        if entry is not None:
            entries.append(entry)
    return entries


def parse_day(markdown: str) -> DailyEntry | None:
    """Parse and return the first entry, if any."""
    entries = parse(markdown)
    return entries[0] if entries else None


def is_valid_format(markdown: str) -> bool:
    """True if the text holds at least one parsable day."""
    return bool(parse(markdown))


def split_day_blocks(markdown: str) -> list[list[str]]:
    """
    Split text into day blocks, each starting with its "# YYYY-MM-DD" line.

    Material before the first header is discarded. Trailing blank lines and
    legacy "---" separators at the end of a block are dropped.
    """
    blocks: list[list[str]] = []
    current: list[str] | None = None

    for line in markdown.split("\n"):
        if DAY_HEADER_RE.match(line.strip()):
            if current is not None:
                blocks.append(current)
            current = [line]
        elif current is not None:
            current.append(line)

    if current is not None:
        blocks.append(current)

    for block in blocks:
        while len(block) > 1 and block[-1].strip() in ("", _SEPARATOR):
            block.pop()
    return blocks


def parse_date_header(line: str) -> date | None:
    """Strict-parse the first token after "#". Any failure returns None."""
    trimmed = line.strip()
    if not trimmed.startswith("#"):
        return None
    token = trimmed[1:].strip().split(" ")[0]
    if not _DATE_TOKEN_RE.fullmatch(token):
        return None
    try:
        return datetime.strptime(token, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_list_item(line: str) -> str | None:
    """Strip a -, *, + or "N." marker. Checkboxes are not list items."""
    trimmed = line.strip()

    # Marker + space, so **bold** is not mistaken for a bullet
    if trimmed.startswith(("- ", "* ", "+ ")):
        if trimmed.startswith("- ["):
            return None
        return trimmed[2:].strip()

    match = _NUMBERED_RE.match(trimmed)
    if match:
        return match.group(1)
    return None


@dataclass
class _BlockState:
    """
    Parser state for one day block.

    kind is None before the first "## " header (no section open), else the
    type the open section currently has: TEXT for Reflections, LIST until a
    checkbox is seen, then TASKS.
    """

    entry: DailyEntry
    name: str | None = None
    kind: SectionType | None = None
    items: list[str] = field(default_factory=list)
    loose_text: list[str] = field(default_factory=list)

    def open_section(self, name: str) -> None:
        self.close_section()
        self.name = name
        self.kind = SectionType.TEXT if is_reflections(name) else SectionType.LIST

    def close_section(self) -> None:
        if self.name is None:
            return
        self.entry.sections.append(Section(name=self.name, items=self.items, type=self.kind))
        self.items = []

    def add_item(self, item: str) -> None:
        # A checkbox promotes a list section; text sections stay text
        if self.kind is SectionType.LIST and is_checkbox_line(item):
            self.kind = SectionType.TASKS
        self.items.append(item)

    def on_blank(self) -> None:
        # Keep paragraph breaks in free text only
        if self.kind is SectionType.TEXT:
            self.items.append("")

    def on_task(self, line: str) -> None:
        if self.name is not None:
            self.add_item(line)

    def on_list_item(self, item: str) -> None:
        if self.name is None:
            self.entry.notes.append(item)
            return
        self.add_item(item)
        lowered = self.name.lower()
        if lowered == "goals":
            self.entry.goals.append(item)
        elif lowered == "notes":
            self.entry.notes.append(item)

    def on_text(self, line: str) -> None:
        if self.name is None:
            self.loose_text.append(line)
        else:
            self.add_item(line)


def _parse_block(lines: list[str]) -> DailyEntry | None:
    if not lines:
        return None
    day = parse_date_header(lines[0])
    if day is None:
        return None

    state = _BlockState(entry=DailyEntry(date=day))

    for raw in lines[1:]:
        line = raw.rstrip()

        if line.startswith("## "):
            state.open_section(line[3:].strip())
            continue

        if not line.strip():
            state.on_blank()
            continue

        task = parse_task_line(line)
        if task is not None:
            state.entry.tasks.append(task)
            state.on_task(line)
            continue

        item = parse_list_item(line)
        if item is not None:
            state.on_list_item(item)
            continue

        state.on_text(line)

    state.close_section()

    entry = state.entry
    reflections = next((s for s in entry.sections if is_reflections(s.name)), None)
    if reflections is not None:
        entry.reflections = "\n".join(reflections.items).strip()
    elif state.loose_text:
        entry.reflections = "\n".join(state.loose_text).strip()
    return entry
