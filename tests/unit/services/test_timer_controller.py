"""Tests for the timer controller."""

import datetime as dt
from decimal import Decimal

import pytest

from billing_engine.errors import ConflictError, InvalidInputError, NotFoundError

UTC = dt.timezone.utc
DAY = dt.date(2025, 10, 27)


class TestStart:
    """Test starting timers."""

    def test_start_records_server_time(self, engine, project, clock):
        """Test a new entry starts now and is running."""
        entry = engine.timer.start(project.id)

        assert entry.project_id == project.id
        assert entry.start_at == clock.now()
        assert entry.is_running
        assert entry.total_hours == Decimal("0")

    def test_start_unknown_project(self, engine):
        """Test starting on a missing project fails."""
        with pytest.raises(NotFoundError):
            engine.timer.start(999)

    def test_start_invalid_id(self, engine):
        """Test identifiers must be positive integers."""
        with pytest.raises(InvalidInputError):
            engine.timer.start(0)

    def test_second_timer_conflicts(self, engine, project, second_project):
        """Test only one timer may run across all projects."""
        running = engine.timer.start(project.id)

        with pytest.raises(ConflictError) as exc_info:
            engine.timer.start(second_project.id)

        assert exc_info.value.message == "A timer is already running"
        assert exc_info.value.conflicting.id == running.id
        assert exc_info.value.conflicting.project_id == project.id
        assert len(engine.timer.list_entries()) == 1

    def test_same_project_twice_conflicts(self, engine, project):
        """Test restarting the running project is refused as well."""
        engine.timer.start(project.id)
        with pytest.raises(ConflictError):
            engine.timer.start(project.id)


class TestStop:
    """Test stopping timers."""

    def test_stop_rounds_up(self, engine, project, clock):
        """Test 47 minutes closes as 0.8 hours."""
        engine.timer.start(project.id)
        clock.advance(minutes=47)

        entry = engine.timer.stop(project.id, note="Kickoff")

        assert entry.end_at == clock.now()
        assert entry.total_hours == Decimal("0.8")
        assert entry.note == "Kickoff"
        assert not entry.is_running

    def test_short_timer_bills_minimum(self, engine, project, clock):
        """Test any non-zero duration bills at least 0.1 hours."""
        engine.timer.start(project.id)
        clock.advance(seconds=1)

        assert engine.timer.stop(project.id).total_hours == Decimal("0.1")

    def test_stop_without_running_timer(self, engine, project):
        """Test stopping an idle project is reported as not found."""
        with pytest.raises(NotFoundError, match="No running timer for this project"):
            engine.timer.stop(project.id)

    def test_stop_other_project(self, engine, project, second_project):
        """Test the running timer of another project is not stopped."""
        engine.timer.start(project.id)
        with pytest.raises(NotFoundError):
            engine.timer.stop(second_project.id)
        assert engine.timer.current_timer().entry.project_id == project.id

    def test_client_stop_time_within_skew_is_used(self, engine, project, clock):
        """Test a caller stop time slightly ahead of the server is kept."""
        engine.timer.start(project.id)
        clock.advance(minutes=30)
        client_stop = clock.now() + dt.timedelta(seconds=60)

        entry = engine.timer.stop(project.id, client_stop_at=client_stop)

        assert entry.end_at == client_stop

    def test_sub_millisecond_timer_bills_minimum(self, engine, project):
        """Test a stop 400 microseconds after the start still bills 0.1 hours."""
        started = engine.timer.start(project.id)

        entry = engine.timer.stop(
            project.id, client_stop_at=started.start_at + dt.timedelta(microseconds=400)
        )

        assert entry.total_hours == Decimal("0.1")

    def test_client_stop_time_in_past_is_used(self, engine, project, clock):
        """Test a caller can stop at an earlier moment than now."""
        engine.timer.start(project.id)
        start = clock.now()
        clock.advance(hours=3)

        entry = engine.timer.stop(project.id, client_stop_at=start + dt.timedelta(hours=1))

        assert entry.total_hours == Decimal("1.0")

    def test_client_stop_time_beyond_skew_is_ignored(self, engine, project, clock):
        """Test a stop time too far in the future falls back to server time."""
        engine.timer.start(project.id)
        clock.advance(minutes=30)

        entry = engine.timer.stop(
            project.id, client_stop_at=clock.now() + dt.timedelta(minutes=10)
        )

        assert entry.end_at == clock.now()
        assert entry.total_hours == Decimal("0.5")

    def test_client_stop_time_before_start(self, engine, project, clock):
        """Test a stop time at or before the start is rejected."""
        entry = engine.timer.start(project.id)
        clock.advance(minutes=10)

        with pytest.raises(InvalidInputError) as exc_info:
            engine.timer.stop(project.id, client_stop_at=entry.start_at)

        assert exc_info.value.fields == ["client_stop_at"]
        assert engine.timer.current_timer() is not None

    def test_naive_client_stop_time(self, engine, project):
        """Test a stop time without offset is rejected."""
        engine.timer.start(project.id)
        with pytest.raises(InvalidInputError):
            engine.timer.stop(project.id, client_stop_at=dt.datetime(2025, 10, 27, 23, 30))

    def test_stop_overlapping_entry(self, engine, project, clock, add_entry):
        """Test closing onto an existing manual entry is a conflict."""
        # clock is 12:00 local; manual entry 12:30-13:00
        existing = add_entry(project.id, dt.date(2025, 10, 28), (12, 30), (13, 0))
        engine.timer.start(project.id)
        clock.advance(hours=1)

        with pytest.raises(ConflictError) as exc_info:
            engine.timer.stop(project.id)

        assert exc_info.value.conflicting.id == existing.id


class TestResolveStopTime:
    """Test the skew tolerance rule in isolation."""

    def test_none_uses_server(self, engine):
        now = dt.datetime(2025, 10, 27, 12, 0, tzinfo=UTC)
        assert engine.timer.resolve_stop_time(now) == now

    def test_exactly_at_tolerance(self, engine):
        now = dt.datetime(2025, 10, 27, 12, 0, tzinfo=UTC)
        edge = now + dt.timedelta(seconds=120)
        assert engine.timer.resolve_stop_time(now, edge) == edge

    def test_just_beyond_tolerance(self, engine):
        now = dt.datetime(2025, 10, 27, 12, 0, tzinfo=UTC)
        late = now + dt.timedelta(seconds=121)
        assert engine.timer.resolve_stop_time(now, late) == now

    def test_result_is_utc(self, engine, local_time):
        now = dt.datetime(2025, 10, 27, 12, 0, tzinfo=UTC)
        stop = local_time(2025, 10, 28, 0, 30)
        resolved = engine.timer.resolve_stop_time(now, stop)
        assert resolved.utcoffset() == dt.timedelta(0)
        assert resolved == stop


class TestCurrentTimer:
    """Test reading the running timer."""

    def test_nothing_running(self, engine, project):
        assert engine.timer.current_timer() is None

    def test_running_timer_with_context(self, engine, client, project):
        """Test the running entry comes with its project and client."""
        entry = engine.timer.start(project.id)

        running = engine.timer.current_timer()

        assert running.entry.id == entry.id
        assert running.project.name == "Website"
        assert running.client.name == client.name

    def test_cleared_after_stop(self, engine, project, clock):
        engine.timer.start(project.id)
        clock.advance(minutes=5)
        engine.timer.stop(project.id)
        assert engine.timer.current_timer() is None


class TestManualEntries:
    """Test recording closed intervals directly."""

    def test_scenario_a_one_hour(self, engine, project, add_entry):
        """Test 09:00-10:00 records exactly one hour."""
        entry = add_entry(project.id, DAY, (9, 0), (10, 0), note="Design")

        assert entry.total_hours == Decimal("1.0")
        assert entry.start_at.utcoffset() == dt.timedelta(0)
        assert entry.note == "Design"

    def test_scenario_b_rounds_up(self, engine, project, add_entry):
        """Test 09:00-09:47 records 0.8 hours."""
        assert add_entry(project.id, DAY, (9, 0), (9, 47)).total_hours == Decimal("0.8")

    def test_overlap_conflicts(self, engine, project, add_entry):
        """Test overlapping intervals on one project are refused."""
        first = add_entry(project.id, DAY, (9, 0), (10, 0))

        with pytest.raises(ConflictError, match="overlaps") as exc_info:
            add_entry(project.id, DAY, (9, 30), (10, 30))

        assert exc_info.value.conflicting.id == first.id

    def test_touching_intervals_allowed(self, engine, project, add_entry):
        """Test an entry may start exactly when another ends."""
        add_entry(project.id, DAY, (9, 0), (10, 0))
        add_entry(project.id, DAY, (10, 0), (11, 0))
        assert len(engine.timer.list_entries(project.id)) == 2

    def test_other_project_may_overlap(self, engine, project, second_project, add_entry):
        """Test overlap is only checked within a project."""
        add_entry(project.id, DAY, (9, 0), (10, 0))
        add_entry(second_project.id, DAY, (9, 0), (10, 0))
        assert len(engine.timer.list_entries()) == 2

    def test_end_before_start(self, engine, project, add_entry):
        with pytest.raises(InvalidInputError):
            add_entry(project.id, DAY, (10, 0), (9, 0))

    def test_unknown_project(self, engine, add_entry):
        with pytest.raises(NotFoundError):
            add_entry(999, DAY, (9, 0), (10, 0))


class TestEntries:
    """Test listing and deleting entries."""

    def test_list_filters(self, engine, project, second_project, add_entry):
        """Test filtering by project and invoice state."""
        add_entry(project.id, DAY, (9, 0), (10, 0))
        add_entry(second_project.id, DAY, (11, 0), (12, 0))
        engine.builder.build_for_project(project.id, up_to_date=DAY)

        assert len(engine.timer.list_entries()) == 2
        assert len(engine.timer.list_entries(project_id=second_project.id)) == 1
        uninvoiced = engine.timer.list_entries(uninvoiced_only=True)
        assert [entry.project_id for entry in uninvoiced] == [second_project.id]

    def test_list_ordered_by_start(self, engine, project, add_entry):
        later = add_entry(project.id, DAY, (14, 0), (15, 0))
        earlier = add_entry(project.id, DAY, (9, 0), (10, 0))
        assert [e.id for e in engine.timer.list_entries()] == [earlier.id, later.id]

    def test_delete_entry(self, engine, project, add_entry):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        engine.timer.delete_entry(entry.id)
        assert engine.timer.list_entries() == []

    def test_delete_running_entry(self, engine, project):
        """Test a running timer can be discarded."""
        entry = engine.timer.start(project.id)
        engine.timer.delete_entry(entry.id)
        assert engine.timer.current_timer() is None

    def test_delete_invoiced_entry(self, engine, project, add_entry):
        """Test invoiced entries are protected."""
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        engine.builder.build_for_project(project.id, up_to_date=DAY)

        with pytest.raises(ConflictError, match="Cannot delete an invoiced time entry"):
            engine.timer.delete_entry(entry.id)

    def test_delete_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.timer.delete_entry(42)


class TestUpdateEntry:
    """Test editing recorded entries."""

    def test_retime_recomputes_hours(self, engine, project, add_entry, local_time):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))

        updated = engine.timer.update_entry(entry.id, end_at=local_time(2025, 10, 27, 10, 47))

        assert updated.total_hours == Decimal("1.8")
        assert updated.end_at == local_time(2025, 10, 27, 10, 47).astimezone(UTC)

    def test_note_only(self, engine, project, add_entry):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0), note="Draft")
        updated = engine.timer.update_entry(entry.id, {"note": "Wireframes"})
        assert updated.note == "Wireframes"
        assert updated.total_hours == Decimal("1.0")

    def test_overlap_ignores_itself(self, engine, project, add_entry, local_time):
        """Test moving an entry within its own interval is not an overlap."""
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        updated = engine.timer.update_entry(entry.id, start_at=local_time(2025, 10, 27, 9, 30))
        assert updated.total_hours == Decimal("0.5")

    def test_overlap_with_other_entry(self, engine, project, add_entry, local_time):
        first = add_entry(project.id, DAY, (9, 0), (10, 0))
        second = add_entry(project.id, DAY, (11, 0), (12, 0))

        with pytest.raises(ConflictError) as exc_info:
            engine.timer.update_entry(second.id, start_at=local_time(2025, 10, 27, 9, 30))

        assert exc_info.value.conflicting.id == first.id

    def test_move_to_project_checks_overlap_there(
        self, engine, project, second_project, add_entry
    ):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        add_entry(second_project.id, DAY, (9, 30), (10, 30))

        with pytest.raises(ConflictError):
            engine.timer.update_entry(entry.id, project_id=second_project.id)

    def test_move_to_project(self, engine, project, second_project, add_entry):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        updated = engine.timer.update_entry(entry.id, project_id=second_project.id)
        assert updated.project_id == second_project.id

    def test_end_before_start(self, engine, project, add_entry, local_time):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        with pytest.raises(InvalidInputError) as exc_info:
            engine.timer.update_entry(entry.id, end_at=local_time(2025, 10, 27, 8, 0))
        assert exc_info.value.fields == ["end_at"]

    def test_invoiced_entry_keeps_project(self, engine, project, second_project, add_entry):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        engine.builder.build_for_project(project.id, up_to_date=DAY)

        with pytest.raises(ConflictError, match="Cannot change project"):
            engine.timer.update_entry(entry.id, project_id=second_project.id)

    def test_invoiced_entry_keeps_interval(self, engine, project, add_entry, local_time):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        engine.builder.build_for_project(project.id, up_to_date=DAY)

        with pytest.raises(ConflictError, match="interval"):
            engine.timer.update_entry(entry.id, end_at=local_time(2025, 10, 27, 11, 0))

        updated = engine.timer.update_entry(entry.id, note="Kickoff")
        assert updated.note == "Kickoff"
        assert updated.is_invoiced

    def test_unknown_project(self, engine, project, add_entry):
        entry = add_entry(project.id, DAY, (9, 0), (10, 0))
        with pytest.raises(NotFoundError):
            engine.timer.update_entry(entry.id, project_id=404)

    def test_missing_entry(self, engine):
        with pytest.raises(NotFoundError):
            engine.timer.update_entry(42, note="x")
