"""Task entity tests — construction rules and completion transitions."""

from datetime import datetime, timezone

import pytest

from taskkeeper.domain.task import Task
from taskkeeper.errors import ErrorKind, ValidationError


def test_new_task_is_pending_with_generated_id():
    task = Task("user-1", "  Buy milk  ", "2 liters")
    assert task.title == "Buy milk"
    assert task.description == "2 liters"
    assert task.is_completed is False
    assert task.id
    assert task.created_at.tzinfo is not None


def test_empty_description_is_allowed():
    assert Task("user-1", "Title", "").description == ""


@pytest.mark.parametrize("title", ["", "   ", None])
def test_blank_title_rejected(title):
    with pytest.raises(ValidationError, match="Task title cannot be empty."):
        Task("user-1", title, "")


def test_title_length_boundary():
    assert len(Task("user-1", "x" * 100, "").title) == 100
    with pytest.raises(ValidationError, match="cannot exceed 100 characters"):
        Task("user-1", "x" * 101, "")


def test_title_length_counts_after_trim():
    task = Task("user-1", "  " + "x" * 100 + "  ", "")
    assert task.title == "x" * 100


def test_description_length_boundary():
    assert len(Task("user-1", "t", "d" * 500).description) == 500
    with pytest.raises(ValidationError, match="cannot exceed 500 characters"):
        Task("user-1", "t", "d" * 501)


def test_missing_description_rejected():
    with pytest.raises(ValidationError, match="must be provided"):
        Task("user-1", "t", None)


def test_missing_owner_rejected():
    with pytest.raises(ValidationError) as exc:
        Task("", "t", "")
    assert exc.value.kind is ErrorKind.VALIDATION


def test_rehydration_keeps_given_fields():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    task = Task("user-1", "t", "d", id="abc", created_at=created, is_completed=True)
    assert (task.id, task.created_at, task.is_completed) == ("abc", created, True)


def test_update_details_validates_both_before_changing():
    task = Task("user-1", "Original", "Keep me")
    with pytest.raises(ValidationError):
        task.update_details("New title", "d" * 501)
    assert task.title == "Original"
    assert task.description == "Keep me"

    task.update_details("  New  ", "")
    assert task.title == "New"
    assert task.description == ""


def test_completion_transitions():
    task = Task("user-1", "t", "")
    task.mark_as_completed()
    task.mark_as_completed()
    assert task.is_completed is True
    task.mark_as_pending()
    task.mark_as_pending()
    assert task.is_completed is False
    task.toggle_completion()
    assert task.is_completed is True
    task.toggle_completion()
    assert task.is_completed is False


def test_ownership():
    task = Task("user-1", "t", "")
    assert task.is_owned_by("user-1")
    assert not task.is_owned_by("user-2")


def test_copy_is_independent():
    task = Task("user-1", "t", "")
    clone = task.copy()
    assert clone == task
    clone.mark_as_completed()
    assert clone != task
    assert task.is_completed is False
