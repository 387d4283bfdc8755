"""
Catalog service: clients, projects and expenses.

Deletion is refused while billing history depends on a record: a client
with projects, a project with time entries or expenses, or an expense that
has been invoiced.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import func, select

from billing_engine.errors import ConflictError, NotFoundError
from billing_engine.models.project import (
    Client,
    ClientCreate,
    ClientUpdate,
    Project,
    ProjectCreate,
    ProjectUpdate,
)
from billing_engine.models.time_entry import Expense, ExpenseCreate, ExpenseUpdate
from billing_engine.storage.database import Database
from billing_engine.storage.tables import ClientRow, ExpenseRow, ProjectRow, TimeEntryRow
from billing_engine.utils.logging_utils import log_operation
from billing_engine.validators.inputs import parse_input, require_positive_id

logger = logging.getLogger(__name__)

Payload = Union[Mapping[str, Any], None]


class CatalogService:
    """CRUD for the records invoices are built from."""

    def __init__(self, db: Database):
        self.db = db

    # Clients

    def _require_client(self, session, client_id: int) -> ClientRow:
        require_positive_id(client_id, "client_id")
        client = session.get(ClientRow, client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    @log_operation(name="client.create", level="INFO")
    def create_client(self, data: Union[ClientCreate, Payload] = None, **kwargs) -> Client:
        request = parse_input(ClientCreate, data, **kwargs)
        with self.db.transaction() as session:
            row = ClientRow(**request.model_dump())
            session.add(row)
            session.flush()
            client = Client.model_validate(row)
        logger.info(f"Created client {client.id} ({client.name})")
        return client

    def get_client(self, client_id: int) -> Client:
        with self.db.transaction() as session:
            return Client.model_validate(self._require_client(session, client_id))

    def list_clients(self) -> List[Client]:
        with self.db.transaction() as session:
            rows = session.execute(select(ClientRow).order_by(ClientRow.name)).scalars()
            return [Client.model_validate(row) for row in rows]

    @log_operation(name="client.update", level="INFO")
    def update_client(
        self, client_id: int, data: Union[ClientUpdate, Payload] = None, **kwargs
    ) -> Client:
        patch = parse_input(ClientUpdate, data, **kwargs)
        with self.db.transaction() as session:
            row = self._require_client(session, client_id)
            for key, value in patch.model_dump(exclude_unset=True).items():
                if key == "name" and value is None:
                    continue
                setattr(row, key, value)
            session.flush()
            return Client.model_validate(row)

    @log_operation(name="client.delete", level="INFO")
    def delete_client(self, client_id: int) -> None:
        """
        Raises:
            NotFoundError: Unknown client
            ConflictError: The client still has projects
        """
        with self.db.transaction() as session:
            row = self._require_client(session, client_id)
            project_count = session.scalar(
                select(func.count(ProjectRow.id)).where(ProjectRow.client_id == row.id)
            )
            if project_count:
                logger.warning(f"Refusing to delete client {client_id} with {project_count} project(s)")
                raise ConflictError(
                    f"Cannot delete client with existing projects ({project_count})"
                )
            session.delete(row)
        logger.info(f"Deleted client {client_id}")

    # Projects

    def _require_project(self, session, project_id: int) -> ProjectRow:
        require_positive_id(project_id, "project_id")
        project = session.get(ProjectRow, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    @log_operation(name="project.create", level="INFO")
    def create_project(self, data: Union[ProjectCreate, Payload] = None, **kwargs) -> Project:
        request = parse_input(ProjectCreate, data, **kwargs)
        with self.db.transaction() as session:
            self._require_client(session, request.client_id)
            row = ProjectRow(**request.model_dump())
            session.add(row)
            session.flush()
            project = Project.model_validate(row)
        logger.info(f"Created project {project.id} ({project.name}) for client {project.client_id}")
        return project

    def get_project(self, project_id: int) -> Project:
        with self.db.transaction() as session:
            return Project.model_validate(self._require_project(session, project_id))

    def list_projects(
        self, client_id: Optional[int] = None, active_only: bool = False
    ) -> List[Project]:
        stmt = select(ProjectRow)
        if client_id is not None:
            stmt = stmt.where(ProjectRow.client_id == client_id)
        if active_only:
            stmt = stmt.where(ProjectRow.active.is_(True))
        with self.db.transaction() as session:
            rows = session.execute(stmt.order_by(ProjectRow.name)).scalars()
            return [Project.model_validate(row) for row in rows]

    @log_operation(name="project.update", level="INFO")
    def update_project(
        self, project_id: int, data: Union[ProjectUpdate, Payload] = None, **kwargs
    ) -> Project:
        """Patch a project. Rate changes apply to work that is not yet invoiced."""
        patch = parse_input(ProjectUpdate, data, **kwargs)
        with self.db.transaction() as session:
            row = self._require_project(session, project_id)
            for key, value in patch.model_dump(exclude_unset=True).items():
                if key in ("name", "hourly_rate", "active") and value is None:
                    continue
                setattr(row, key, value)
            session.flush()
            return Project.model_validate(row)

    @log_operation(name="project.delete", level="INFO")
    def delete_project(self, project_id: int) -> None:
        """
        Raises:
            NotFoundError: Unknown project
            ConflictError: The project has time entries or expenses
        """
        with self.db.transaction() as session:
            row = self._require_project(session, project_id)
            entry_count = session.scalar(
                select(func.count(TimeEntryRow.id)).where(TimeEntryRow.project_id == row.id)
            )
            expense_count = session.scalar(
                select(func.count(ExpenseRow.id)).where(ExpenseRow.project_id == row.id)
            )
            if entry_count or expense_count:
                logger.warning(
                    f"Refusing to delete project {project_id}: {entry_count} time "
                    f"entr(y/ies), {expense_count} expense(s)"
                )
                raise ConflictError(
                    "Cannot delete project with time entries or expenses"
                )
            session.delete(row)
        logger.info(f"Deleted project {project_id}")

    # Expenses

    def _require_expense(self, session, expense_id: int) -> ExpenseRow:
        require_positive_id(expense_id, "expense_id")
        expense = session.get(ExpenseRow, expense_id)
        if expense is None:
            raise NotFoundError("Expense", expense_id)
        return expense

    @log_operation(name="expense.create", level="INFO")
    def create_expense(self, data: Union[ExpenseCreate, Payload] = None, **kwargs) -> Expense:
        request = parse_input(ExpenseCreate, data, **kwargs)
        with self.db.transaction() as session:
            self._require_project(session, request.project_id)
            row = ExpenseRow(**request.model_dump())
            session.add(row)
            session.flush()
            expense = Expense.model_validate(row)
        logger.info(f"Recorded expense {expense.id} of {expense.amount} on project {expense.project_id}")
        return expense

    def get_expense(self, expense_id: int) -> Expense:
        with self.db.transaction() as session:
            return Expense.model_validate(self._require_expense(session, expense_id))

    def list_expenses(self, project_id: Optional[int] = None) -> List[Expense]:
        stmt = select(ExpenseRow)
        if project_id is not None:
            stmt = stmt.where(ExpenseRow.project_id == project_id)
        with self.db.transaction() as session:
            rows = session.execute(stmt.order_by(ExpenseRow.expense_date, ExpenseRow.id)).scalars()
            return [Expense.model_validate(row) for row in rows]

    @log_operation(name="expense.update", level="INFO")
    def update_expense(
        self, expense_id: int, data: Union[ExpenseUpdate, Payload] = None, **kwargs
    ) -> Expense:
        """Patch an expense.

        Once invoiced, only the description may change; the billed amount,
        date, project and billability are fixed by the invoice.

        Raises:
            NotFoundError: Unknown expense or project
            ConflictError: A billed field of an invoiced expense would change
        """
        patch = parse_input(ExpenseUpdate, data, **kwargs)
        changes = {
            key: value
            for key, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        with self.db.transaction() as session:
            row = self._require_expense(session, expense_id)
            if row.is_invoiced:
                billed = sorted(
                    key for key, value in changes.items()
                    if key != "description" and getattr(row, key) != value
                )
                if billed:
                    logger.warning(
                        f"Refusing to change {', '.join(billed)} of invoiced expense {expense_id}"
                    )
                    raise ConflictError(
                        "Cannot change an invoiced expense",
                        conflicting=Expense.model_validate(row),
                    )
            if changes.get("project_id", row.project_id) != row.project_id:
                self._require_project(session, changes["project_id"])
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            expense = Expense.model_validate(row)
        logger.info(f"Updated expense {expense.id} on project {expense.project_id}")
        return expense

    @log_operation(name="expense.delete", level="INFO")
    def delete_expense(self, expense_id: int) -> None:
        """
        Raises:
            NotFoundError: Unknown expense
            ConflictError: The expense has been invoiced
        """
        with self.db.transaction() as session:
            row = self._require_expense(session, expense_id)
            if row.is_invoiced:
                logger.warning(f"Refusing to delete invoiced expense {expense_id}")
                raise ConflictError(
                    "Cannot delete an invoiced expense", conflicting=Expense.model_validate(row)
                )
            session.delete(row)
        logger.info(f"Deleted expense {expense_id}")
