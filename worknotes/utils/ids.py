"""
Task identifier policy
"""

import re
import uuid
from typing import Dict, List

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def generate_id() -> str:
    """Generate a fresh canonical task identifier"""
    return str(uuid.uuid4())


def is_valid_uuid(task_id: str) -> bool:
    """Check that an identifier is in the canonical UUID format"""
    return isinstance(task_id, str) and bool(UUID_PATTERN.match(task_id))


def ensure_valid_uuid(task_id: str) -> str:
    """Return the identifier, or a fresh one if it is not canonical"""
    return task_id if is_valid_uuid(task_id) else generate_id()


def ensure_valid_ids(collection: Dict[str, List]) -> Dict[str, List]:
    """
    Regenerate every non-canonical task identifier in a collection

    Args:
        collection: Task collection

    Returns:
        The same collection if every identifier is canonical, otherwise a copy
    """
    if all(is_valid_uuid(task.id) for tasks in collection.values() for task in tasks):
        return collection

    return {
        date: [
            task if is_valid_uuid(task.id) else task.model_copy(update={"id": generate_id()})
            for task in tasks
        ]
        for date, tasks in collection.items()
    }
