"""
Timer controller: starting, stopping and recording time entries.

At most one time entry may be running system-wide, and closed entries of
the same project never overlap. Both rules are checked and enforced inside
a single write-locked transaction per operation.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_engine.calculators.clock import Clock
from billing_engine.calculators.time_utils import round_duration_up
from billing_engine.errors import ConflictError, InvalidInputError, NotFoundError
from billing_engine.models.project import Client, Project
from billing_engine.models.time_entry import (
    ManualTimeEntryCreate,
    RunningTimer,
    StopTimerRequest,
    TimeEntry,
    TimeEntryUpdate,
)
from billing_engine.storage.database import Database
from billing_engine.storage.tables import ProjectRow, TimeEntryRow
from billing_engine.utils.logging_utils import log_operation
from billing_engine.validators.inputs import parse_input, require_positive_id

logger = logging.getLogger(__name__)


def find_running_entry(
    session: Session, project_id: Optional[int] = None
) -> Optional[TimeEntryRow]:
    """The entry with no end time, optionally restricted to one project."""
    stmt = select(TimeEntryRow).where(TimeEntryRow.end_at.is_(None))
    if project_id is not None:
        stmt = stmt.where(TimeEntryRow.project_id == project_id)
    return session.execute(stmt.order_by(TimeEntryRow.start_at)).scalars().first()


def find_overlapping_entry(
    session: Session,
    project_id: int,
    start_at: dt.datetime,
    end_at: dt.datetime,
    exclude_id: Optional[int] = None,
) -> Optional[TimeEntryRow]:
    """First closed entry of the project whose ``[start, end)`` meets the interval.

    Intervals that only touch (one ends exactly when the other starts) do
    not overlap.
    """
    stmt = select(TimeEntryRow).where(
        TimeEntryRow.project_id == project_id,
        TimeEntryRow.end_at.is_not(None),
        TimeEntryRow.start_at < end_at,
        TimeEntryRow.end_at > start_at,
    )
    if exclude_id is not None:
        stmt = stmt.where(TimeEntryRow.id != exclude_id)
    return session.execute(stmt.order_by(TimeEntryRow.start_at)).scalars().first()


class TimerController:
    """
    Starts and stops the single running timer and records manual entries.

    Example:
        >>> timer = TimerController(db, SystemClock(ZoneInfo("UTC")))
        >>> entry = timer.start(project_id=3)
        >>> closed = timer.stop(project_id=3, note="Kickoff call")
        >>> closed.total_hours
        Decimal('0.1')
    """

    def __init__(self, db: Database, clock: Clock, clock_skew_seconds: int = 120):
        """
        Initialize the controller.

        Args:
            db: Billing store
            clock: Source of the server time
            clock_skew_seconds: How far in the future a caller-supplied stop
                time may lie before it is replaced by the server time
        """
        self.db = db
        self.clock = clock
        self.clock_skew = dt.timedelta(seconds=clock_skew_seconds)

    def _require_project(self, session: Session, project_id: int) -> ProjectRow:
        project = session.get(ProjectRow, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def _check_overlap(
        self,
        session: Session,
        project_id: int,
        start_at: dt.datetime,
        end_at: dt.datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        overlap = find_overlapping_entry(session, project_id, start_at, end_at, exclude_id)
        if overlap is not None:
            conflicting = TimeEntry.model_validate(overlap)
            logger.warning(
                f"Interval {start_at.isoformat()} - {end_at.isoformat()} on project "
                f"{project_id} overlaps time entry {conflicting.id}"
            )
            raise ConflictError("Time entry overlaps an existing entry", conflicting=conflicting)

    def resolve_stop_time(
        self, server_now: dt.datetime, client_stop_at: Optional[dt.datetime] = None
    ) -> dt.datetime:
        """Use the caller's stop time unless it lies beyond the skew tolerance."""
        if client_stop_at is None:
            return server_now
        client_stop_at = client_stop_at.astimezone(dt.timezone.utc)
        if client_stop_at <= server_now + self.clock_skew:
            return client_stop_at
        logger.info(
            f"Ignoring client stop time {client_stop_at.isoformat()}: more than "
            f"{int(self.clock_skew.total_seconds())}s ahead of server time"
        )
        return server_now

    @log_operation(name="timer.start", level="INFO")
    def start(self, project_id: int) -> TimeEntry:
        """
        Start a timer on a project.

        Raises:
            NotFoundError: If the project does not exist
            ConflictError: If any timer is already running (carries it)
        """
        require_positive_id(project_id, "project_id")
        with self.db.transaction(lock=True) as session:
            self._require_project(session, project_id)

            running = find_running_entry(session)
            if running is not None:
                conflicting = TimeEntry.model_validate(running)
                logger.warning(
                    f"Refusing to start timer on project {project_id}: entry "
                    f"{conflicting.id} on project {conflicting.project_id} is running"
                )
                raise ConflictError("A timer is already running", conflicting=conflicting)

            row = TimeEntryRow(
                project_id=project_id,
                start_at=self.clock.now(),
                end_at=None,
                total_hours=Decimal("0"),
            )
            session.add(row)
            session.flush()
            entry = TimeEntry.model_validate(row)

        logger.info(f"Started timer {entry.id} on project {project_id}")
        return entry

    @log_operation(name="timer.stop", level="INFO")
    def stop(
        self,
        project_id: int,
        client_stop_at: Optional[dt.datetime] = None,
        note: Optional[str] = None,
    ) -> TimeEntry:
        """
        Stop the running timer of a project.

        The stop time is ``client_stop_at`` when it is no more than the skew
        tolerance ahead of the server clock, otherwise the server time.

        Raises:
            NotFoundError: If no timer is running for the project
            InvalidInputError: If the resolved stop time is not after the start
            ConflictError: If the closed interval would overlap another entry
        """
        require_positive_id(project_id, "project_id")
        request = parse_input(StopTimerRequest, client_stop_at=client_stop_at, note=note)

        with self.db.transaction(lock=True) as session:
            running = find_running_entry(session, project_id)
            if running is None:
                raise NotFoundError(
                    "Running timer", project_id, message="No running timer for this project"
                )

            end_at = self.resolve_stop_time(self.clock.now(), request.client_stop_at)
            if end_at <= running.start_at:
                raise InvalidInputError(
                    f"Stop time {end_at.isoformat()} is not after the timer start "
                    f"{running.start_at.isoformat()}",
                    fields=["client_stop_at"],
                )

            self._check_overlap(session, project_id, running.start_at, end_at, running.id)

            running.end_at = end_at
            running.total_hours = round_duration_up(running.start_at, end_at)
            if request.note is not None:
                running.note = request.note
            session.flush()
            entry = TimeEntry.model_validate(running)

        logger.info(
            f"Stopped timer {entry.id} on project {project_id}: {entry.total_hours}h"
        )
        return entry

    def current_timer(self) -> Optional[RunningTimer]:
        """The running entry with its project and client, or None."""
        with self.db.transaction() as session:
            running = find_running_entry(session)
            if running is None:
                return None
            project = running.project
            return RunningTimer(
                entry=TimeEntry.model_validate(running),
                project=Project.model_validate(project),
                client=Client.model_validate(project.client),
            )

    @log_operation(name="timer.add_manual_entry", level="INFO")
    def add_manual_entry(
        self, data: Union[ManualTimeEntryCreate, Mapping[str, Any], None] = None, **kwargs
    ) -> TimeEntry:
        """
        Record a closed interval directly.

        Raises:
            InvalidInputError: If the interval is missing, naive or empty
            NotFoundError: If the project does not exist
            ConflictError: If the interval overlaps another closed entry
        """
        request = parse_input(ManualTimeEntryCreate, data, **kwargs)
        start_at = request.start_at.astimezone(dt.timezone.utc)
        end_at = request.end_at.astimezone(dt.timezone.utc)

        with self.db.transaction(lock=True) as session:
            self._require_project(session, request.project_id)
            self._check_overlap(session, request.project_id, start_at, end_at)

            row = TimeEntryRow(
                project_id=request.project_id,
                start_at=start_at,
                end_at=end_at,
                total_hours=round_duration_up(start_at, end_at),
                note=request.note,
            )
            session.add(row)
            session.flush()
            entry = TimeEntry.model_validate(row)

        logger.info(
            f"Recorded manual entry {entry.id} on project {entry.project_id}: "
            f"{entry.total_hours}h"
        )
        return entry

    @log_operation(name="timer.update_entry", level="INFO")
    def update_entry(
        self,
        entry_id: int,
        data: Union[TimeEntryUpdate, Mapping[str, Any], None] = None,
        **kwargs,
    ) -> TimeEntry:
        """
        Edit a time entry's project, interval or note.

        A closed entry gets its hours recomputed and is checked for overlap
        against the other closed entries of its (possibly new) project. An
        invoiced entry keeps its project and interval; only the note may
        change.

        Raises:
            NotFoundError: If the entry or the new project does not exist
            InvalidInputError: If the interval would end at or before its start
            ConflictError: If an invoiced entry would be moved or re-timed, or
                the new interval overlaps another entry
        """
        require_positive_id(entry_id, "entry_id")
        patch = parse_input(TimeEntryUpdate, data, **kwargs)
        # None leaves a field unchanged, except for the note which it clears
        changes = {
            key: value
            for key, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or key == "note"
        }

        with self.db.transaction(lock=True) as session:
            row = session.get(TimeEntryRow, entry_id)
            if row is None:
                raise NotFoundError("Time entry", entry_id)

            project_id = changes.get("project_id", row.project_id)
            start_at = changes.get("start_at", row.start_at).astimezone(dt.timezone.utc)
            end_at = changes.get("end_at", row.end_at)
            if end_at is not None:
                end_at = end_at.astimezone(dt.timezone.utc)

            if row.is_invoiced:
                if project_id != row.project_id:
                    logger.warning(f"Refusing to move invoiced time entry {entry_id}")
                    raise ConflictError(
                        "Cannot change project for invoiced time entry",
                        conflicting=TimeEntry.model_validate(row),
                    )
                if start_at != row.start_at or end_at != row.end_at:
                    logger.warning(f"Refusing to re-time invoiced time entry {entry_id}")
                    raise ConflictError(
                        "Cannot change the interval of an invoiced time entry",
                        conflicting=TimeEntry.model_validate(row),
                    )

            if project_id != row.project_id:
                self._require_project(session, project_id)

            if end_at is not None:
                if end_at <= start_at:
                    raise InvalidInputError(
                        f"end_at ({end_at.isoformat()}) must be after "
                        f"start_at ({start_at.isoformat()})",
                        fields=["end_at"],
                    )
                self._check_overlap(session, project_id, start_at, end_at, row.id)
                row.total_hours = round_duration_up(start_at, end_at)

            row.project_id = project_id
            row.start_at = start_at
            row.end_at = end_at
            if "note" in changes:
                row.note = changes["note"]
            session.flush()
            entry = TimeEntry.model_validate(row)

        logger.info(
            f"Updated time entry {entry.id}: {entry.total_hours}h on project {entry.project_id}"
        )
        return entry

    @log_operation(name="timer.delete_entry", level="INFO")
    def delete_entry(self, entry_id: int) -> None:
        """
        Delete a time entry. A running entry may be discarded this way.

        Raises:
            NotFoundError: If the entry does not exist
            ConflictError: If the entry has been invoiced
        """
        require_positive_id(entry_id, "entry_id")
        with self.db.transaction(lock=True) as session:
            row = session.get(TimeEntryRow, entry_id)
            if row is None:
                raise NotFoundError("Time entry", entry_id)
            if row.is_invoiced:
                logger.warning(f"Refusing to delete invoiced time entry {entry_id}")
                raise ConflictError(
                    "Cannot delete an invoiced time entry",
                    conflicting=TimeEntry.model_validate(row),
                )
            session.delete(row)
        logger.info(f"Deleted time entry {entry_id}")

    def list_entries(
        self, project_id: Optional[int] = None, uninvoiced_only: bool = False
    ) -> List[TimeEntry]:
        """Time entries ordered by start, optionally filtered."""
        stmt = select(TimeEntryRow)
        if project_id is not None:
            stmt = stmt.where(TimeEntryRow.project_id == project_id)
        if uninvoiced_only:
            stmt = stmt.where(TimeEntryRow.is_invoiced.is_(False))
        with self.db.transaction() as session:
            rows = session.execute(stmt.order_by(TimeEntryRow.start_at)).scalars().all()
            return [TimeEntry.model_validate(row) for row in rows]
