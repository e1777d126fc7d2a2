"""Unit tests for task ordering, temporal filters and duration parsing."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from mono_mcp.models import Task, TaskPriority, TaskStatus

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=UTC)


def make_task(task_id: str, **fields: Any) -> Task:
    data = {"id": task_id, "title": task_id, "status": "todo", **fields}
    return Task.from_api(data)


def iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


@pytest.mark.unit
class TestTaskFromApi:
    """Test the read-only task view."""

    def test_priority_defaults_to_medium(self) -> None:
        """Test absent and unrecognized priorities read as medium."""
        assert make_task("a").priority == TaskPriority.MEDIUM
        assert make_task("b", priority="critical").priority == TaskPriority.MEDIUM

    def test_due_time_normalized_to_utc(self) -> None:
        """Test offsets are converted so equal instants compare equal."""
        zulu = make_task("a", due_time="2025-01-10T12:00:00Z")
        offset = make_task("b", due_time="2025-01-10T14:00:00+02:00")
        naive = make_task("c", due_time="2025-01-10T12:00:00")

        assert zulu.due_time == offset.due_time == naive.due_time == NOW

    def test_unparseable_due_time_is_none(self) -> None:
        """Test a malformed due time counts as no due time."""
        assert make_task("a", due_time="next tuesday").due_time is None

    def test_payload_is_returned_unchanged(self) -> None:
        """Test to_dict returns the original remote fields."""
        data = {"id": "a", "title": "A", "status": "todo", "custom": {"x": 1}}

        assert Task.from_api(data).to_dict() == data

    def test_unknown_status(self) -> None:
        """Test an unrecognized status is kept as None."""
        assert make_task("a", status="snoozed").status is None


@pytest.mark.unit
class TestSorting:
    """Test deterministic multi-key ordering."""

    def test_priority_then_due(self) -> None:
        """Test [low, high (due), medium] sorts to [high, medium, low]."""
        from mono_mcp.sorting import sort_by_priority_and_due_date

        tasks = [
            make_task("low", priority="low"),
            make_task("high", priority="high", due_time="2025-01-01T00:00:00Z"),
            make_task("medium", priority="medium"),
        ]

        assert [t.id for t in sort_by_priority_and_due_date(tasks)] == [
            "high",
            "medium",
            "low",
        ]

    def test_urgent_first_and_due_before_undated(self) -> None:
        """Test urgent outranks high, and dated tasks precede undated ones."""
        from mono_mcp.sorting import sort_by_priority_and_due_date

        tasks = [
            make_task("high-undated", priority="high"),
            make_task("high-late", priority="high", due_time="2025-03-01T00:00:00Z"),
            make_task("high-early", priority="high", due_time="2025-02-01T00:00:00Z"),
            make_task("urgent", priority="urgent"),
        ]

        assert [t.id for t in sort_by_priority_and_due_date(tasks)] == [
            "urgent",
            "high-early",
            "high-late",
            "high-undated",
        ]

    def test_ties_keep_input_order(self) -> None:
        """Test the sort is stable."""
        from mono_mcp.sorting import sort_by_priority_and_due_date

        tasks = [make_task(str(i), priority="low") for i in range(5)]

        assert [t.id for t in sort_by_priority_and_due_date(tasks)] == [
            "0",
            "1",
            "2",
            "3",
            "4",
        ]

    def test_sort_by_due_date(self) -> None:
        """Test due ordering puts undated tasks last."""
        from mono_mcp.sorting import sort_by_due_date

        tasks = [
            make_task("none"),
            make_task("later", due_time="2025-01-12T00:00:00Z"),
            make_task("sooner", due_time="2025-01-11T00:00:00+05:00"),
        ]

        assert [t.id for t in sort_by_due_date(tasks)] == ["sooner", "later", "none"]


@pytest.mark.unit
class TestTemporalFilters:
    """Test overdue and due-soon windows."""

    def test_overdue_is_strictly_before_now(self) -> None:
        """Test a task due exactly now is not overdue."""
        from mono_mcp.filtering import filter_overdue

        tasks = [
            make_task("past", due_time=iso(NOW - timedelta(seconds=1))),
            make_task("now", due_time=iso(NOW)),
            make_task("undated"),
        ]

        assert [t.id for t in filter_overdue(tasks, NOW)] == ["past"]

    def test_due_soon_window_is_inclusive(self) -> None:
        """Test both window ends are included and one second past the end is not."""
        from mono_mcp.filtering import filter_due_soon

        end = NOW + timedelta(days=7)
        tasks = [
            make_task("before", due_time=iso(NOW - timedelta(seconds=1))),
            make_task("start", due_time=iso(NOW)),
            make_task("end", due_time=iso(end)),
            make_task("after", due_time=iso(end + timedelta(seconds=1))),
            make_task("undated"),
        ]

        assert [t.id for t in filter_due_soon(tasks, NOW, 7)] == ["start", "end"]

    def test_zero_day_window(self) -> None:
        """Test days_ahead 0 keeps only tasks due exactly now."""
        from mono_mcp.filtering import filter_due_soon

        tasks = [
            make_task("now", due_time=iso(NOW)),
            make_task("later", due_time=iso(NOW + timedelta(minutes=1))),
        ]

        assert [t.id for t in filter_due_soon(tasks, NOW, 0)] == ["now"]


@pytest.mark.unit
class TestStatusAndTagFilters:
    """Test categorical filters."""

    def test_plannable_statuses(self) -> None:
        """Test blocked tasks are optional."""
        from mono_mcp.filtering import plannable_statuses

        assert plannable_statuses() == (
            TaskStatus.TODO,
            TaskStatus.IN_PROGRESS,
            TaskStatus.BLOCKED,
        )
        assert TaskStatus.BLOCKED not in plannable_statuses(include_blocked=False)

    def test_filter_by_status(self) -> None:
        """Test only wanted statuses are kept."""
        from mono_mcp.filtering import filter_by_status, plannable_statuses

        tasks = [
            make_task("todo"),
            make_task("done", status="done"),
            make_task("blocked", status="blocked"),
            make_task("odd", status="snoozed"),
        ]

        kept = filter_by_status(tasks, plannable_statuses(include_blocked=False))

        assert [t.id for t in kept] == ["todo"]

    def test_filter_by_tag(self) -> None:
        """Test tag matching is exact."""
        from mono_mcp.filtering import filter_by_tag

        tasks = [
            make_task("a", tags=["work", "urgent"]),
            make_task("b", tags=["homework"]),
            make_task("c"),
        ]

        assert [t.id for t in filter_by_tag(tasks, "work")] == ["a"]


@pytest.mark.unit
class TestDurationParsing:
    """Test ISO 8601 duration to hours conversion."""

    @pytest.mark.parametrize(
        ("duration", "hours"),
        [
            ("PT1H", 1.0),
            ("PT30M", 0.5),
            ("PT2H30M", 2.5),
            ("PT0M", 0.0),
            (None, 0.0),
            ("", 0.0),
            ("P1D", 0.0),
            ("garbage", 0.0),
        ],
    )
    def test_parse_duration_hours(self, duration: str | None, hours: float) -> None:
        """Test supported forms convert and anything else counts as zero."""
        from mono_mcp.filtering import parse_duration_hours

        assert parse_duration_hours(duration) == pytest.approx(hours)

    def test_hours_add_up(self) -> None:
        """Test PT1H plus PT30M is 1.5 hours."""
        from mono_mcp.filtering import parse_duration_hours

        assert parse_duration_hours("PT1H") + parse_duration_hours("PT30M") == 1.5
