"""Functional core - pure business logic with no I/O."""

from .tasks import Task, format_hours, parse_duration, parse_task_line
from .entry import MAX_TASKS, DailyEntry, DayStatus, Section, SectionType
from .parser import parse, parse_day, is_valid_format
from .writer import write, write_day, append_day, update_day, remove_day

__all__ = [
    # Tasks
    "Task",
    "format_hours",
    "parse_duration",
    "parse_task_line",
    # Entries
    "MAX_TASKS",
    "DailyEntry",
    "DayStatus",
    "Section",
    "SectionType",
    # Parser
    "parse",
    "parse_day",
    "is_valid_format",
    # Writer
    "write",
    "write_day",
    "append_day",
    "update_day",
    "remove_day",
]
