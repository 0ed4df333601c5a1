"""
Markdown export/import of the task collection

Format:

    ## 2024-06-01
    - [ ] Buy milk
    - [x] Call bank _(priority: high)_

Lines that are neither date headings nor task lines are ignored, so notes
can be interleaved freely.
"""

import re
from pathlib import Path
from typing import Optional, Union
from worknotes.config.constants import DEFAULT_PRIORITY, MARKDOWN_EXTENSION, PRIORITIES
from worknotes.models.task import Task, TaskCollection
from worknotes.utils.date_utils import now_iso
from worknotes.utils.ids import generate_id

DATE_HEADING = re.compile(r"^##\s+(\d{4}-\d{2}-\d{2})")
TASK_LINE = re.compile(r"^-\s+\[([ xX])\]\s+(.+?)(?:\s+_\(priority:\s+(\w+)\)_)?$")


def tasks_to_markdown(collection: TaskCollection) -> str:
    """
    Format all tasks as markdown, grouped by date in ascending order

    Args:
        collection: Task collection

    Returns:
        Markdown text
    """
    sections = []
    for date in sorted(collection):
        lines = [f"## {date}"]
        for task in collection[date]:
            status = "x" if task.is_completed else " "
            line = f"- [{status}] {task.content}"
            if task.priority and task.priority != DEFAULT_PRIORITY:
                line += f" _(priority: {task.priority})_"
            lines.append(line)
        sections.append("\n".join(lines))
    return "\n\n".join(sections).strip()


def markdown_to_tasks(markdown: str, now: Optional[str] = None) -> TaskCollection:
    """
    Parse markdown into a task collection

    Every task gets a fresh identifier, and created_at (plus completed_at for
    completed tasks) is set to the parse time since the file carries no
    timestamps. Unknown priority values fall back to the default.

    Args:
        markdown: Markdown text
        now: Timestamp to stamp parsed tasks with (defaults to current time)

    Returns:
        Parsed collection without empty dates
    """
    result: TaskCollection = {}
    current_date: Optional[str] = None
    timestamp = now or now_iso()

    for line in markdown.splitlines():
        line = line.strip()
        if not line:
            continue

        date_match = DATE_HEADING.match(line)
        if date_match:
            current_date = date_match.group(1)
            continue

        if current_date is None:
            continue

        task_match = TASK_LINE.match(line)
        if not task_match:
            continue

        is_completed = task_match.group(1).lower() == "x"
        priority = DEFAULT_PRIORITY
        if task_match.group(3):
            value = task_match.group(3).lower()
            if value in PRIORITIES:
                priority = value

        result.setdefault(current_date, []).append(Task(
            id=generate_id(),
            content=task_match.group(2).strip(),
            is_completed=is_completed,
            created_at=timestamp,
            completed_at=timestamp if is_completed else None,
            priority=priority,
            date=current_date,
        ))

    return result


def count_tasks(collection: TaskCollection) -> int:
    return sum(len(tasks) for tasks in collection.values())


def export_filename(today: str) -> str:
    """Download filename for an export made on the given day"""
    return f"tasks-{today}{MARKDOWN_EXTENSION}"


def write_markdown_file(path: Union[str, Path], markdown: str) -> Path:
    """Write markdown to a UTF-8 file, adding the .md extension if missing"""
    path = Path(path)
    if path.suffix != MARKDOWN_EXTENSION:
        path = path.with_name(path.name + MARKDOWN_EXTENSION)
    path.write_text(markdown + "\n", encoding="utf-8")
    return path


def read_markdown_file(path: Union[str, Path]) -> str:
    """Read a UTF-8 markdown file"""
    return Path(path).read_text(encoding="utf-8")
