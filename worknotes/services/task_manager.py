"""
Task management service

The module-level functions are pure: each takes a collection and returns a
new one without touching its input, and returns the input itself when the
operation does not apply (unknown id, bad index). TaskManager owns the
session's collection and bumps a revision counter on every effective change,
which is what persistence uses to detect unsynced edits.
"""

import re
from typing import Callable, List, Optional, Tuple
from worknotes.config.constants import DEFAULT_PRIORITY, MAX_HISTORY_SIZE, PRIORITIES
from worknotes.models.task import Task, TaskCollection
from worknotes.utils.date_utils import get_today_date, is_date_key, now_iso, process_date_command
from worknotes.utils.error_handler import ValidationError
from worknotes.utils.ids import generate_id
from worknotes.utils.logger import logger

CHECKBOX_PREFIX = re.compile(r"^\s*\[(x| )\]\s(.+)$", re.IGNORECASE)

Listener = Callable[[TaskCollection, int], None]


def process_markdown_checkbox(text: str) -> Tuple[bool, bool, str]:
    """
    Strip a markdown checkbox prefix from task text

    Args:
        text: Raw task text, e.g. "[x] Call bank"

    Returns:
        (is_task, is_completed, content)
    """
    match = CHECKBOX_PREFIX.match(text)
    if match:
        return True, match.group(1).lower() == "x", match.group(2).strip()
    return False, False, text.strip()


def _validate_priority(priority: str) -> str:
    if priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority '{priority}', expected one of {', '.join(PRIORITIES)}")
    return priority


def _find_task(collection: TaskCollection, task_id: str) -> Tuple[Optional[str], int]:
    for date, tasks in collection.items():
        for index, task in enumerate(tasks):
            if task.id == task_id:
                return date, index
    return None, -1


def _replace_task(collection: TaskCollection, task_id: str, **changes) -> TaskCollection:
    date, index = _find_task(collection, task_id)
    if date is None:
        logger.debug(f"Task {task_id} not found, nothing to update")
        return collection

    tasks = list(collection[date])
    tasks[index] = tasks[index].model_copy(update=changes)
    return {**collection, date: tasks}


def new_task(
    content: str,
    date: str,
    priority: str = DEFAULT_PRIORITY,
    has_reminder: bool = False,
) -> Task:
    """
    Create a task, stripping any checkbox prefix from its content

    Raises:
        ValidationError: If content is empty or priority is unknown
    """
    _, is_completed, task_content = process_markdown_checkbox(content)
    if not task_content:
        raise ValidationError("Task content is required")
    if not is_date_key(date):
        raise ValidationError(f"Invalid date '{date}', expected YYYY-MM-DD")

    created_at = now_iso()
    return Task(
        id=generate_id(),
        content=task_content,
        is_completed=is_completed,
        created_at=created_at,
        completed_at=created_at if is_completed else None,
        priority=_validate_priority(priority),
        date=date,
        has_reminder=has_reminder,
    )


def add_task(collection: TaskCollection, task: Task) -> TaskCollection:
    """Append a task to the end of its date"""
    return {**collection, task.date: [*collection.get(task.date, []), task]}


def set_task_status(collection: TaskCollection, task_id: str, is_completed: bool) -> TaskCollection:
    """Set completion, stamping completed_at on completion and clearing it otherwise"""
    return _replace_task(
        collection,
        task_id,
        is_completed=is_completed,
        completed_at=now_iso() if is_completed else None,
    )


def update_task_content(collection: TaskCollection, task_id: str, content: str) -> TaskCollection:
    """Replace task text; a checkbox prefix is dropped and completion left as is"""
    _, _, content = process_markdown_checkbox(content)
    if not content:
        raise ValidationError("Task content is required")
    return _replace_task(collection, task_id, content=content)


def set_task_priority(collection: TaskCollection, task_id: str, priority: str) -> TaskCollection:
    return _replace_task(collection, task_id, priority=_validate_priority(priority))


def delete_task(collection: TaskCollection, task_id: str) -> TaskCollection:
    """Delete a task, removing its date if it was the last one"""
    date, index = _find_task(collection, task_id)
    if date is None:
        return collection

    updated = dict(collection)
    tasks = [task for task in collection[date] if task.id != task_id]
    if tasks:
        updated[date] = tasks
    else:
        del updated[date]
    return updated


def move_task(collection: TaskCollection, task_id: str, from_date: str, to_date: str) -> TaskCollection:
    """
    Move a task to the end of another date

    Args:
        collection: Task collection
        task_id: Task to move
        from_date: Date the task is currently filed under
        to_date: Destination date

    Returns:
        Updated collection; the source date is removed when left empty
    """
    source = collection.get(from_date, [])
    index = next((i for i, task in enumerate(source) if task.id == task_id), -1)
    if index == -1 or from_date == to_date:
        return collection
    if not is_date_key(to_date):
        raise ValidationError(f"Invalid date '{to_date}', expected YYYY-MM-DD")

    updated = dict(collection)
    remaining = source[:index] + source[index + 1:]
    moved = source[index].model_copy(update={"date": to_date})

    updated[to_date] = [*collection.get(to_date, []), moved]
    if remaining:
        updated[from_date] = remaining
    else:
        del updated[from_date]
    return updated


def reorder_tasks(collection: TaskCollection, from_index: int, to_index: int, date: str) -> TaskCollection:
    """Move the task at from_index to to_index within a date"""
    tasks = collection.get(date)
    if not tasks or not 0 <= from_index < len(tasks) or from_index == to_index:
        return collection

    reordered = list(tasks)
    moved = reordered.pop(from_index)
    reordered.insert(max(0, min(to_index, len(reordered))), moved)
    return {**collection, date: reordered}


def sort_uncompleted_first(tasks: List[Task]) -> List[Task]:
    """Display order: uncompleted tasks first, otherwise keeping manual order"""
    return sorted(tasks, key=lambda task: task.is_completed)


class TaskManager:
    """Owns the in-memory task collection of a session"""

    def __init__(self, collection: Optional[TaskCollection] = None, active_date: Optional[str] = None):
        """
        Initialize task manager

        Args:
            collection: Initial collection
            active_date: Date new tasks are filed under (defaults to today)
        """
        self.collection: TaskCollection = collection or {}
        self.active_date = active_date or get_today_date()
        self.revision = 0
        self._listeners: List[Listener] = []
        self._past: List[TaskCollection] = []
        self._future: List[TaskCollection] = []
        self.logger = logger

    # ---- observers ----

    def subscribe(self, listener: Listener) -> Listener:
        """Register a callback invoked with (collection, revision) after each change"""
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self.collection, self.revision)
            except Exception as e:
                self.logger.error(f"Task listener {listener!r} failed: {e}", exc_info=True)

    # ---- state ----

    def _commit(self, updated: TaskCollection, record_history: bool = True) -> TaskCollection:
        if updated is self.collection:
            return updated

        if record_history:
            self._past.append(self.collection)
            if len(self._past) > MAX_HISTORY_SIZE:
                self._past = self._past[-MAX_HISTORY_SIZE:]
            self._future = []

        self.collection = updated
        self.revision += 1
        self._notify()
        return updated

    def replace(self, collection: TaskCollection, record_history: bool = True) -> TaskCollection:
        """Install a whole collection (load, merge or import result)"""
        return self._commit(collection, record_history=record_history)

    def reset(self, collection: TaskCollection):
        """Install a freshly loaded collection and drop undo history"""
        self._past = []
        self._future = []
        self._commit(collection, record_history=False)

    def set_active_date(self, date: str):
        if not is_date_key(date):
            raise ValidationError(f"Invalid date '{date}', expected YYYY-MM-DD")
        self.active_date = date

    # ---- mutations ----

    def add_task(self, content: str, priority: str = DEFAULT_PRIORITY, has_reminder: bool = False) -> Task:
        """Add a task under the active date"""
        task = new_task(content, self.active_date, priority=priority, has_reminder=has_reminder)
        self._commit(add_task(self.collection, task))
        self.logger.debug(f"Added task {task.id} under {task.date}")
        return task

    def handle_input(self, text: str, priority: str = DEFAULT_PRIORITY, has_reminder: bool = False) -> Optional[Task]:
        """
        Handle text typed into the task input

        "/today" and "/DD-MM-YY" switch the active date; anything else is
        added as a task.

        Returns:
            The new task, or None for a date command
        """
        is_date_command, date = process_date_command(text)
        if is_date_command:
            self.set_active_date(date)
            self.logger.info(f"Active date set to {date}")
            return None
        return self.add_task(text, priority=priority, has_reminder=has_reminder)

    def set_status(self, task_id: str, is_completed: bool) -> TaskCollection:
        return self._commit(set_task_status(self.collection, task_id, is_completed))

    def update_content(self, task_id: str, content: str) -> TaskCollection:
        return self._commit(update_task_content(self.collection, task_id, content))

    def set_priority(self, task_id: str, priority: str) -> TaskCollection:
        return self._commit(set_task_priority(self.collection, task_id, priority))

    def delete(self, task_id: str) -> TaskCollection:
        return self._commit(delete_task(self.collection, task_id))

    def move(self, task_id: str, from_date: str, to_date: str) -> TaskCollection:
        return self._commit(move_task(self.collection, task_id, from_date, to_date))

    def reorder(self, from_index: int, to_index: int, date: str) -> TaskCollection:
        return self._commit(reorder_tasks(self.collection, from_index, to_index, date))

    # ---- history ----

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def undo(self) -> TaskCollection:
        if not self._past:
            return self.collection
        previous = self._past.pop()
        self._future.insert(0, self.collection)
        return self._commit(previous, record_history=False)

    def redo(self) -> TaskCollection:
        if not self._future:
            return self.collection
        following = self._future.pop(0)
        self._past.append(self.collection)
        return self._commit(following, record_history=False)

    def find_task(self, task_id: str) -> Optional[Task]:
        date, index = _find_task(self.collection, task_id)
        return self.collection[date][index] if date is not None else None

    def sorted_dates(self) -> List[str]:
        return sorted(self.collection)
