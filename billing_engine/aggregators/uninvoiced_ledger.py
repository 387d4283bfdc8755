"""
Uninvoiced ledger: what is still owed per project up to a cutoff date.

Only closed time entries count; a running timer is never billed. An entry
belongs to the calendar day on which it started in the configured timezone,
and the cutoff day itself is included.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_engine.calculators.clock import Clock
from billing_engine.calculators.time_utils import round_money, start_of_next_day_utc, sum_money
from billing_engine.errors import InvalidInputError, NotFoundError
from billing_engine.models.invoice import ProjectSummary
from billing_engine.storage.database import Database
from billing_engine.storage.tables import ClientRow, ExpenseRow, ProjectRow, TimeEntryRow
from billing_engine.validators.inputs import require_positive_id, require_project_ids

logger = logging.getLogger(__name__)


@dataclass
class ProjectSnapshot:
    """Rows of one project that an invoice built now would consume.

    Attributes:
        project: The project row (its current rate prices the hours)
        time_entries: Closed, uninvoiced entries started on or before the cutoff
        expenses: Billable, uninvoiced expenses dated on or before the cutoff
    """

    project: ProjectRow
    time_entries: List[TimeEntryRow] = field(default_factory=list)
    expenses: List[ExpenseRow] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.time_entries and not self.expenses

    def summarize(self) -> ProjectSummary:
        hours = sum((entry.total_hours for entry in self.time_entries), Decimal("0"))
        rate = self.project.hourly_rate
        time_amount = round_money(hours * rate)
        expense_amount = sum_money(expense.amount for expense in self.expenses)
        return ProjectSummary(
            project_id=self.project.id,
            project_name=self.project.name,
            client_id=self.project.client_id,
            hourly_rate=rate,
            uninvoiced_hours=hours,
            time_amount=time_amount,
            expense_amount=expense_amount,
            total_amount=round_money(time_amount + expense_amount),
            time_entry_count=len(self.time_entries),
            expense_count=len(self.expenses),
        )


class UninvoicedLedger:
    """
    Read-only aggregation of unbilled time and billable expenses.

    Example:
        >>> ledger = UninvoicedLedger(db, clock)
        >>> for summary in ledger.summarize([1, 2], dt.date(2025, 10, 31)):
        ...     print(summary.project_name, summary.total_amount)
    """

    def __init__(self, db: Database, clock: Clock):
        self.db = db
        self.clock = clock

    @property
    def tz(self) -> ZoneInfo:
        return self.clock.tz

    def load_projects(self, session: Session, project_ids: Iterable[int]) -> List[ProjectRow]:
        """Fetch projects in the given order; unknown ids raise NotFoundError."""
        ids = require_project_ids(project_ids)
        rows = session.execute(select(ProjectRow).where(ProjectRow.id.in_(ids))).scalars().all()
        by_id: Dict[int, ProjectRow] = {row.id: row for row in rows}
        missing = [project_id for project_id in ids if project_id not in by_id]
        if missing:
            raise NotFoundError(
                "Project", missing, message=f"Project not found: {', '.join(map(str, missing))}"
            )
        return [by_id[project_id] for project_id in ids]

    def require_client(self, session: Session, client_id: int) -> ClientRow:
        require_positive_id(client_id, "client_id")
        client = session.get(ClientRow, client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    def resolve_client_projects(
        self, session: Session, client_id: int, project_ids: Optional[Iterable[int]] = None
    ) -> List[ProjectRow]:
        """Projects of a client-scoped request.

        Without ``project_ids`` every project of the client is in scope.

        Raises:
            NotFoundError: Unknown client or project
            InvalidInputError: A project belongs to another client
        """
        self.require_client(session, client_id)
        if project_ids is None:
            projects = (
                session.execute(
                    select(ProjectRow)
                    .where(ProjectRow.client_id == client_id)
                    .order_by(ProjectRow.id)
                )
                .scalars()
                .all()
            )
            if not projects:
                raise InvalidInputError(
                    "Client has no projects to invoice", fields=["project_ids"]
                )
            return list(projects)

        projects = self.load_projects(session, project_ids)
        foreign = [project.id for project in projects if project.client_id != client_id]
        if foreign:
            raise InvalidInputError(
                f"Projects {', '.join(map(str, foreign))} do not belong to this client",
                fields=["project_ids"],
            )
        return projects

    def snapshot(
        self, session: Session, projects: Iterable[ProjectRow], up_to_date: dt.date
    ) -> List[ProjectSnapshot]:
        """Uninvoiced rows per project, read inside the caller's transaction.

        Projects without anything to bill are left out.
        """
        cutoff = start_of_next_day_utc(up_to_date, self.tz)
        snapshots = []
        for project in projects:
            entries = (
                session.execute(
                    select(TimeEntryRow)
                    .where(
                        TimeEntryRow.project_id == project.id,
                        TimeEntryRow.is_invoiced.is_(False),
                        TimeEntryRow.end_at.is_not(None),
                        TimeEntryRow.start_at < cutoff,
                    )
                    .order_by(TimeEntryRow.start_at, TimeEntryRow.id)
                )
                .scalars()
                .all()
            )
            expenses = (
                session.execute(
                    select(ExpenseRow)
                    .where(
                        ExpenseRow.project_id == project.id,
                        ExpenseRow.is_invoiced.is_(False),
                        ExpenseRow.is_billable.is_(True),
                        ExpenseRow.expense_date <= up_to_date,
                    )
                    .order_by(ExpenseRow.expense_date, ExpenseRow.id)
                )
                .scalars()
                .all()
            )
            snap = ProjectSnapshot(project=project, time_entries=list(entries), expenses=list(expenses))
            if snap.is_empty:
                logger.debug(f"Project {project.id} has nothing to bill up to {up_to_date}")
                continue
            snapshots.append(snap)
        return snapshots

    def summarize(
        self, project_ids: Iterable[int], up_to_date: Optional[dt.date] = None
    ) -> List[ProjectSummary]:
        """
        Unbilled totals for the given projects, in the order given.

        ``time_amount`` prices the summed hours once and rounds once. An
        invoice rounds every line instead, so when a line's hours times rate
        has a fraction of a cent the invoice total can differ from the
        summary by up to a cent per line.

        Args:
            project_ids: Projects to summarize
            up_to_date: Inclusive cutoff date (defaults to today)

        Returns:
            One summary per project with something to bill

        Raises:
            InvalidInputError: If no project ids are given
            NotFoundError: If a project does not exist
        """
        up_to_date = up_to_date or self.clock.today()
        with self.db.transaction() as session:
            projects = self.load_projects(session, project_ids)
            summaries = [snap.summarize() for snap in self.snapshot(session, projects, up_to_date)]
        logger.info(
            f"Summarized {len(projects)} project(s) up to {up_to_date}: "
            f"{len(summaries)} with uninvoiced work"
        )
        return summaries

    def summarize_client(
        self,
        client_id: int,
        up_to_date: Optional[dt.date] = None,
        project_ids: Optional[Iterable[int]] = None,
    ) -> List[ProjectSummary]:
        """
        Unbilled totals for a client's projects.

        Raises:
            NotFoundError: If the client or a project does not exist
            InvalidInputError: If a project belongs to another client
        """
        up_to_date = up_to_date or self.clock.today()
        with self.db.transaction() as session:
            projects = self.resolve_client_projects(session, client_id, project_ids)
            summaries = [snap.summarize() for snap in self.snapshot(session, projects, up_to_date)]
        logger.info(
            f"Summarized client {client_id} up to {up_to_date}: "
            f"{len(summaries)} project(s) with uninvoiced work"
        )
        return summaries
