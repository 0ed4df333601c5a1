"""
Tests for carry-forward of uncompleted tasks
"""

from worknotes.services.carry_forward import carry_forward, has_carried_tasks


def test_carry_forward_moves_uncompleted_past_tasks(make_task):
    """Test the basic scenario"""
    open_task = make_task(content="A", date="2024-01-01")
    done_task = make_task(content="B", date="2024-01-01", is_completed=True, completed_at="2024-01-01T10:00:00Z")
    collection = {"2024-01-01": [open_task, done_task]}

    updated = carry_forward(collection, "2024-01-02")

    assert [t.content for t in updated["2024-01-01"]] == ["B"]
    assert len(updated["2024-01-02"]) == 1
    moved = updated["2024-01-02"][0]
    assert moved.content == "A"
    assert moved.date == "2024-01-02"
    assert moved.id != open_task.id
    assert moved.created_at == open_task.created_at


def test_carry_forward_removes_emptied_dates(make_task):
    """Test a past date with only uncompleted tasks disappears"""
    collection = {
        "2023-12-30": [make_task(content="Old", date="2023-12-30")],
        "2023-12-31": [make_task(content="Older", date="2023-12-31")],
    }

    updated = carry_forward(collection, "2024-01-02")

    assert list(updated) == ["2024-01-02"]
    assert [t.content for t in updated["2024-01-02"]] == ["Old", "Older"]


def test_carry_forward_appends_after_existing_target_tasks(make_task):
    """Test moved tasks go after the day's own tasks"""
    collection = {
        "2024-01-01": [make_task(content="Yesterday", date="2024-01-01")],
        "2024-01-02": [make_task(content="Today", date="2024-01-02")],
    }

    updated = carry_forward(collection, "2024-01-02")

    assert [t.content for t in updated["2024-01-02"]] == ["Today", "Yesterday"]


def test_carry_forward_leaves_future_dates_untouched(make_task):
    """Test dates after the target are never moved"""
    future = make_task(content="Later", date="2024-02-01")
    collection = {"2024-02-01": [future]}

    updated = carry_forward(collection, "2024-01-02")

    assert updated is collection
    assert updated["2024-02-01"] == [future]


def test_carry_forward_returns_same_collection_when_nothing_moves(make_task):
    """Test identity is kept when every past task is completed"""
    collection = {
        "2024-01-01": [make_task(is_completed=True, completed_at="2024-01-01T10:00:00Z")],
        "2024-01-02": [make_task(content="Today", date="2024-01-02")],
    }

    assert carry_forward(collection, "2024-01-02") is collection
    assert carry_forward({}, "2024-01-02") == {}


def test_carry_forward_is_idempotent(make_task):
    """Test a second run on the same day changes nothing"""
    collection = {"2024-01-01": [make_task(content="A")]}

    once = carry_forward(collection, "2024-01-02")
    twice = carry_forward(once, "2024-01-02")

    assert twice is once


def test_carry_forward_does_not_mutate_input(make_task):
    """Test the input collection is left as is"""
    task = make_task(content="A")
    collection = {"2024-01-01": [task]}

    carry_forward(collection, "2024-01-02")

    assert collection == {"2024-01-01": [task]}


def test_has_carried_tasks(make_task):
    """Test detection of tasks created on an earlier day"""
    collection = carry_forward({"2024-01-01": [make_task(content="A")]}, "2024-01-02")

    assert has_carried_tasks(collection, "2024-01-02")
    assert not has_carried_tasks({}, "2024-01-02")
    assert not has_carried_tasks(
        {"2024-01-02": [make_task(date="2024-01-02", created_at="2024-01-02T08:00:00Z")]},
        "2024-01-02",
    )
