"""Day record and section models - pure data, no I/O."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .tasks import Task, checkbox_title, find_task, is_checkbox_line

MAX_TASKS = 7

REFLECTIONS = "reflections"

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class SectionType(Enum):
    """Kind of section content. Inferred from the text, never written."""

    LIST = "list"  # Goals, Notes, custom list sections
    TEXT = "text"  # Free-form text (Reflections)
    TASKS = "tasks"  # Contains at least one checkbox


class DayStatus(Enum):
    """Completion status of a day."""

    WIN = "win"  # All tasks completed
    LOSS = "loss"  # Past day with open tasks or no tasks at all
    PENDING = "pending"  # Today
    SCHEDULED = "scheduled"  # Future day

    @property
    def display_name(self) -> str:
        return self.value.upper()

    @property
    def badge(self) -> str:
        return self.value[0].upper()


def is_reflections(name: str) -> bool:
    return name.lower() == REFLECTIONS


def infer_section_type(name: str, items: list[str]) -> SectionType:
    """Reflections is always text; otherwise any checkbox makes it a task section."""
    if is_reflections(name):
        return SectionType.TEXT
    if any(is_checkbox_line(item) for item in items):
        return SectionType.TASKS
    return SectionType.LIST


@dataclass
class Section:
    """A "## Name" sub-region of a day, holding raw item strings."""

    name: str
    items: list[str] = field(default_factory=list)
    type: SectionType = SectionType.LIST

    def copy(self) -> "Section":
        return Section(name=self.name, items=list(self.items), type=self.type)

    def to_dict(self) -> dict:
        return {"name": self.name, "items": list(self.items), "type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        try:
            section_type = SectionType(data.get("type", "list"))
        except ValueError:
            section_type = SectionType.LIST
        return cls(name=data["name"], items=list(data.get("items", [])), type=section_type)


@dataclass
class DailyEntry:
    """
    One day of the journal.

    Sections hold the document structure; tasks is the flat list of every
    checkbox found anywhere in the day. Checkbox items inside sections are
    linked back to tasks by title only.

    goals, notes and reflections mirror pre-section data and are kept for
    entries written without explicit sections.
    """

    date: date
    tasks: list[Task] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    goals: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    reflections: str = ""

    @property
    def day_of_week(self) -> str:
        return WEEKDAYS[self.date.weekday()]

    def status(self, as_of: date | None = None) -> DayStatus:
        """Today is pending, future is scheduled, past is win only if every task is done."""
        as_of = as_of or date.today()
        if self.date == as_of:
            return DayStatus.PENDING
        if self.date > as_of:
            return DayStatus.SCHEDULED
        return DayStatus.WIN if self.is_win else DayStatus.LOSS

    @property
    def is_win(self) -> bool:
        return bool(self.tasks) and all(t.completed for t in self.tasks)

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.tasks if t.completed)

    @property
    def total_count(self) -> int:
        return len(self.tasks)

    @property
    def completion_percentage(self) -> float:
        if not self.tasks:
            return 0.0
        return self.completed_count / len(self.tasks)

    @property
    def total_hours(self) -> float:
        return sum(t.hours for t in self.tasks)

    # ============== Tasks ==============

    def add_task(self, task: Task) -> bool:
        """Add a task unless the day already holds MAX_TASKS."""
        if len(self.tasks) >= MAX_TASKS:
            return False
        self.tasks.append(task)
        return True

    def remove_task(self, task: Task) -> None:
        """Remove a task and any checkbox item carrying its title."""
        self.tasks = [t for t in self.tasks if t.id != task.id]
        for section in self.sections:
            section.items = [
                item
                for item in section.items
                if not (is_checkbox_line(item) and checkbox_title(item) == task.title)
            ]

    def update_task(self, updated: Task) -> None:
        for i, task in enumerate(self.tasks):
            if task.id == updated.id:
                self.tasks[i] = updated
                return

    def find_task(self, title: str) -> Task | None:
        return find_task(self.tasks, title)

    # ============== Legacy fields ==============

    def add_goal(self, goal: str) -> None:
        if goal.strip():
            self.goals.append(goal.strip())

    def remove_goal(self, index: int) -> None:
        if 0 <= index < len(self.goals):
            del self.goals[index]

    def add_note(self, note: str) -> None:
        if note.strip():
            self.notes.append(note.strip())

    def remove_note(self, index: int) -> None:
        if 0 <= index < len(self.notes):
            del self.notes[index]

    # ============== Sections ==============

    def get_section(self, name: str) -> Section | None:
        return next((s for s in self.sections if s.name == name), None)

    def add_section(self, section: Section) -> None:
        """Append a section unless one with the same name (any case) exists."""
        if any(s.name.lower() == section.name.lower() for s in self.sections):
            return
        self.sections.append(section)

    def delete_section(self, name: str) -> None:
        """Delete a section along with the tasks its checkbox items refer to."""
        section = self.get_section(name)
        if section is None:
            return
        for item in section.items:
            title = checkbox_title(item)
            if title is not None:
                self.tasks = [t for t in self.tasks if t.title != title]
        self.sections = [s for s in self.sections if s.name != name]

    def rename_section(self, old_name: str, new_name: str) -> None:
        section = self.get_section(old_name)
        if section is not None:
            section.name = new_name

    def add_item_to_section(self, name: str, item: str, task: Task | None = None) -> None:
        """
        Append a raw item to a section.

        Passing a task registers it in the flat list, subject to the MAX_TASKS
        cap, and marks a list section as a task section. Text sections stay
        text.
        """
        section = self.get_section(name)
        if section is None:
            return
        section.items.append(item)
        if task is not None:
            if section.type is not SectionType.TEXT:
                section.type = SectionType.TASKS
            self.add_task(task)

    def delete_item_from_section(self, name: str, index: int) -> None:
        section = self.get_section(name)
        if section is None or not 0 <= index < len(section.items):
            return
        item = section.items.pop(index)
        title = checkbox_title(item)
        if title is not None:
            self.tasks = [t for t in self.tasks if t.title != title]

    # ============== Serialization ==============

    def copy(self) -> "DailyEntry":
        return DailyEntry(
            date=self.date,
            tasks=[Task.from_dict(t.to_dict()) for t in self.tasks],
            sections=[s.copy() for s in self.sections],
            goals=list(self.goals),
            notes=list(self.notes),
            reflections=self.reflections,
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "tasks": [t.to_dict() for t in self.tasks],
            "sections": [s.to_dict() for s in self.sections],
            "goals": list(self.goals),
            "notes": list(self.notes),
            "reflections": self.reflections,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailyEntry":
        return cls(
            date=date.fromisoformat(data["date"]),
            tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
            goals=list(data.get("goals", [])),
            notes=list(data.get("notes", [])),
            reflections=data.get("reflections", ""),
        )
