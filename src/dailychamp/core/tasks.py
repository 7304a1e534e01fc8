"""Pure task domain logic - no I/O dependencies."""

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_HOURS = 1.0

CHECKBOX_PREFIXES = {"- [ ]": False, "- [x]": True, "- [X]": True}

_DURATION_RE = re.compile(r"(\d+\.?\d*)\s*(m|h)?")


@dataclass
class Task:
    """A single task within a day.

    Only title, hours and completion are part of equality. The id lives
    in memory only and is regenerated on every parse.
    """

    title: str
    hours: float = DEFAULT_HOURS
    completed: bool = False
    completed_at: datetime | None = field(default=None, compare=False)
    id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False)

    def toggle(self, now: datetime | None = None) -> None:
        """Flip completion, stamping or clearing completed_at."""
        self.completed = not self.completed
        self.completed_at = (now or datetime.now()) if self.completed else None

    def to_line(self) -> str:
        """Render as a checkbox line: - [ ] Title | 2.0h"""
        checkbox = "[x]" if self.completed else "[ ]"
        return f"- {checkbox} {self.title} | {format_hours(self.hours)}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "hours": self.hours,
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        completed_at = None
        if data.get("completed_at"):
            completed_at = datetime.fromisoformat(data["completed_at"])
        task = cls(
            title=data["title"],
            hours=float(data.get("hours", DEFAULT_HOURS)),
            completed=bool(data.get("completed", False)),
            completed_at=completed_at,
        )
        if data.get("id"):
            task.id = data["id"]
        return task


def format_hours(hours: float) -> str:
    """
    Format a duration for the checkbox suffix.

    Under an hour: whole minutes ("20m", "45m").
    An hour or more: one decimal place ("1.0h", "2.5h").
    """
    if hours < 1.0:
        # Half-up, not banker's rounding
        minutes = math.floor(hours * 60 + 0.5)
        return f"{minutes}m"
    return f"{hours:.1f}h"


def parse_duration(text: str) -> float:
    """Parse "20m", "2.5h", "3h" or "2" into hours. Unparsable -> 1.0."""
    match = _DURATION_RE.search(text.strip().lower())
    if not match:
        return DEFAULT_HOURS
    value = float(match.group(1))
    unit = match.group(2) or "h"
    return value / 60.0 if unit == "m" else value


def split_checkbox(line: str) -> tuple[bool, str] | None:
    """
    Split a checkbox line into (completed, remainder).

    Returns None unless the stripped line starts with one of the three
    recognised markers. Any other bracket content is not a checkbox.
    """
    trimmed = line.strip()
    for prefix, completed in CHECKBOX_PREFIXES.items():
        if trimmed.startswith(prefix):
            return completed, trimmed[len(prefix):].strip()
    return None


def is_checkbox_line(line: str) -> bool:
    return split_checkbox(line) is not None


def checkbox_title(line: str) -> str | None:
    """Title portion of a checkbox line (text before "|"), or None."""
    parts = split_checkbox(line)
    if parts is None:
        return None
    _, remainder = parts
    title = remainder.split("|")[0].strip()
    return title or None


def is_placeholder_checkbox(line: str) -> bool:
    """True for template scaffolding such as "- [ ] | 2.0h" (no title)."""
    parts = split_checkbox(line)
    if parts is None:
        return False
    _, remainder = parts
    return not remainder or remainder.startswith("|")


def parse_task_line(line: str) -> Task | None:
    """
    Parse "- [ ] Title | 2.0h" into a Task.

    Returns None for anything that is not a checkbox with a non-empty title.
    Never raises.
    """
    parts = split_checkbox(line)
    if parts is None:
        return None
    completed, remainder = parts

    hours = DEFAULT_HOURS
    if "|" in remainder:
        # Only the first field after the title carries the duration
        fields = remainder.split("|")
        title = fields[0].strip()
        hours = parse_duration(fields[1])
    else:
        title = remainder

    if not title:
        return None

    return Task(title=title, hours=hours, completed=completed)


def find_task(tasks: list[Task], title: str | None) -> Task | None:
    """First task whose title matches exactly (document order wins on duplicates)."""
    if not title:
        return None
    return next((t for t in tasks if t.title == title), None)
