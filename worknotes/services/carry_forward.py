"""
Carry-forward of uncompleted tasks to the current day
"""

from worknotes.models.task import TaskCollection
from worknotes.utils.ids import generate_id
from worknotes.utils.logger import logger


def carry_forward(collection: TaskCollection, target_date: str) -> TaskCollection:
    """
    Move uncompleted tasks from past dates to the target date

    Moved tasks get a new identifier and date but keep created_at, so their
    age is still known. Dates on or after target_date are untouched, and a
    past date left without tasks is removed.

    Args:
        collection: Task collection
        target_date: Date to carry tasks to (YYYY-MM-DD)

    Returns:
        The input collection itself if nothing moved, otherwise a new one
    """
    past_dates = sorted(date for date in collection if date < target_date)
    if not any(not task.is_completed for date in past_dates for task in collection[date]):
        return collection

    updated: TaskCollection = dict(collection)
    carried = list(updated.get(target_date, []))
    moved = 0

    for date in past_dates:
        uncompleted = [task for task in updated[date] if not task.is_completed]
        if not uncompleted:
            continue

        for task in uncompleted:
            carried.append(task.model_copy(update={"id": generate_id(), "date": target_date}))
        moved += len(uncompleted)

        remaining = [task for task in updated[date] if task.is_completed]
        if remaining:
            updated[date] = remaining
        else:
            del updated[date]

    updated[target_date] = carried
    logger.info(f"Carried {moved} uncompleted task(s) forward to {target_date}")
    return updated


def has_carried_tasks(collection: TaskCollection, target_date: str) -> bool:
    """Whether target_date holds tasks created on an earlier day"""
    return any(
        task.created_at.split("T")[0] != target_date
        for task in collection.get(target_date, [])
    )
