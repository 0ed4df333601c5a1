"""
Merge engine for task collections

Collections from different sources (local cache, remote rows, parsed
markdown) never share identifiers, so tasks are matched by content within
the same date.
"""

from collections.abc import Mapping
from typing import Any, List, Optional
from pydantic import ValidationError as PydanticValidationError
from worknotes.models.task import Task, TaskCollection
from worknotes.utils.date_utils import now_iso, parse_timestamp
from worknotes.utils.ids import ensure_valid_uuid
from worknotes.utils.logger import logger


def _coerce_task(entry: Any, date: str, source: str) -> Optional[Task]:
    if isinstance(entry, Task):
        return entry
    try:
        return Task.model_validate(entry)
    except PydanticValidationError as e:
        logger.warning(f"Invalid task under {date} in {source}, skipping: {e.error_count()} error(s)")
        return None


def normalize_collection(raw: Any, source: str = "collection") -> TaskCollection:
    """
    Defensive normalization of a possibly malformed collection

    Non-mapping input becomes empty, date entries that are not lists are
    treated as empty, and entries that are not valid tasks are skipped.

    Args:
        raw: Collection-like value
        source: Name used in log messages

    Returns:
        Collection of Task lists (possibly with empty lists)
    """
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning(f"Invalid {source} format: {type(raw).__name__}")
        return {}

    normalized: TaskCollection = {}
    for date, entries in raw.items():
        if not isinstance(entries, list):
            logger.warning(f"Tasks for date {date} in {source} is not a list: {type(entries).__name__}")
            normalized[date] = []
            continue
        tasks = [_coerce_task(entry, date, source) for entry in entries]
        normalized[date] = [task for task in tasks if task is not None]
    return normalized


def _drop_empty_dates(collection: TaskCollection) -> TaskCollection:
    return {date: tasks for date, tasks in collection.items() if tasks}


def task_timestamp(task: Task):
    """Recency of a task: completion time if completed, else creation time"""
    return parse_timestamp(task.completed_at or task.created_at)


def _find_by_content(tasks: List[Task], content: str, date: str) -> int:
    for index, task in enumerate(tasks):
        if task.content == content and task.date == date:
            return index
    return -1


def merge_tasks(local_tasks: Any, remote_tasks: Any) -> TaskCollection:
    """
    Merge local and remote tasks, preferring the more recent task on conflict

    Starts from a copy of the remote tasks. Each local task is matched to a
    remote task under the same date with identical content; unmatched local
    tasks are appended, matched ones replace the remote task when their
    timestamp is later but keep the remote identifier. Non-canonical
    identifiers are regenerated.

    Args:
        local_tasks: Local (base) collection
        remote_tasks: Remote (incoming) collection

    Returns:
        Merged collection without empty dates
    """
    local = normalize_collection(local_tasks, "local tasks")
    remote = normalize_collection(remote_tasks, "remote tasks")

    merged: TaskCollection = {
        date: [
            task.model_copy(update={"id": ensure_valid_uuid(task.id)})
            for task in tasks
        ]
        for date, tasks in remote.items()
    }

    for date, tasks in local.items():
        date_tasks = merged.setdefault(date, [])

        for local_task in tasks:
            safe_local_task = local_task.model_copy(update={"id": ensure_valid_uuid(local_task.id)})
            index = _find_by_content(date_tasks, safe_local_task.content, safe_local_task.date)

            if index == -1:
                date_tasks.append(safe_local_task)
                continue

            existing_task = date_tasks[index]
            if task_timestamp(safe_local_task) > task_timestamp(existing_task):
                date_tasks[index] = safe_local_task.model_copy(update={"id": existing_task.id})

    return _drop_empty_dates(merged)


def merge_imported_tasks(existing_tasks: Any, imported_tasks: Any) -> TaskCollection:
    """
    Merge tasks imported from markdown into the current collection

    Unmatched imported tasks are appended. When an imported task matches an
    existing one by content, completion is only ever promoted: a completed
    import marks an incomplete existing task completed, never the reverse.

    Args:
        existing_tasks: Current collection
        imported_tasks: Parsed markdown collection

    Returns:
        Merged collection without empty dates
    """
    existing = normalize_collection(existing_tasks, "existing tasks")
    imported = normalize_collection(imported_tasks, "imported tasks")

    merged: TaskCollection = {date: list(tasks) for date, tasks in existing.items()}

    for date, tasks in imported.items():
        if date not in merged:
            merged[date] = list(tasks)
            continue

        date_tasks = merged[date]
        for imported_task in tasks:
            index = next(
                (i for i, task in enumerate(date_tasks) if task.content == imported_task.content),
                -1,
            )

            if index == -1:
                date_tasks.append(imported_task)
                continue

            existing_task = date_tasks[index]
            if imported_task.is_completed and not existing_task.is_completed:
                date_tasks[index] = existing_task.model_copy(update={
                    "is_completed": True,
                    "completed_at": imported_task.completed_at or now_iso(),
                })

    return _drop_empty_dates(merged)
