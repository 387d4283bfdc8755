"""Unit tests for the client, project and expense commands."""

from decimal import Decimal

import pytest
from click.testing import CliRunner

from billing_engine.cli import cli


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(runner, engine):
    """Invoke the CLI against the in-memory engine."""

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), obj={"engine": engine}, **kwargs)

    return _invoke


class TestClientCommands:
    """Test suite for client commands."""

    def test_add_client(self, invoke, engine):
        """Test creating a client with a default rate."""
        result = invoke("client", "add", "Globex", "--rate", "120", "--invoice-email", "ap@globex.test")

        assert result.exit_code == 0
        assert "Created client 1: Globex" in result.output
        (client,) = engine.catalog.list_clients()
        assert client.default_hourly_rate == Decimal("120.00")
        assert client.invoice_email == "ap@globex.test"

    def test_add_client_blank_name(self, invoke):
        """Test that invalid input exits with the invalid input code."""
        result = invoke("client", "add", "  ")
        assert result.exit_code == 3
        assert "Invalid Input" in result.output

    def test_list_clients(self, invoke, client):
        result = invoke("client", "list")
        assert result.exit_code == 0
        assert "Acme Corp" in result.output
        assert "100.00" in result.output

    def test_list_clients_empty(self, invoke):
        result = invoke("client", "list")
        assert result.exit_code == 0
        assert "No clients yet." in result.output

    def test_delete_client_with_projects(self, invoke, client, project):
        """Test that a conflict exits with the conflict code."""
        result = invoke("client", "delete", str(client.id))
        assert result.exit_code == 5
        assert "Cannot delete client with existing projects" in result.output

    def test_delete_missing_client(self, invoke):
        result = invoke("client", "delete", "42")
        assert result.exit_code == 4
        assert "Not Found" in result.output


class TestProjectCommands:
    """Test suite for project commands."""

    def test_add_project_defaults_to_client_rate(self, invoke, engine, client):
        result = invoke("project", "add", str(client.id), "Mobile App")

        assert result.exit_code == 0
        assert "at 100.00/h" in result.output
        (project,) = engine.catalog.list_projects(client_id=client.id)
        assert project.hourly_rate == Decimal("100.00")

    def test_add_project_with_rate(self, invoke, client):
        result = invoke("project", "add", str(client.id), "Audit", "--rate", "175")
        assert result.exit_code == 0
        assert "at 175.00/h" in result.output

    def test_add_project_unknown_client(self, invoke):
        result = invoke("project", "add", "9", "Ghost")
        assert result.exit_code == 4

    def test_list_projects(self, invoke, project, second_project):
        result = invoke("project", "list", "--client", str(project.client_id))
        assert result.exit_code == 0
        assert "Website" in result.output
        assert "Backend" in result.output

    def test_set_rate(self, invoke, engine, project):
        result = invoke("project", "set-rate", str(project.id), "130")
        assert result.exit_code == 0
        assert engine.catalog.get_project(project.id).hourly_rate == Decimal("130.00")

    def test_set_rate_invalid(self, invoke, project):
        result = invoke("project", "set-rate", str(project.id), "lots")
        assert result.exit_code == 3

    def test_delete_project(self, invoke, engine, project):
        result = invoke("project", "delete", str(project.id))
        assert result.exit_code == 0
        assert engine.catalog.list_projects() == []


class TestExpenseCommands:
    """Test suite for expense commands."""

    def test_add_expense_defaults_to_today(self, invoke, engine, project):
        result = invoke("expense", "add", str(project.id), "49.90", "--description", "Domain")

        assert result.exit_code == 0
        assert "49.90 on 2025-10-28" in result.output
        (expense,) = engine.catalog.list_expenses(project.id)
        assert expense.is_billable

    def test_add_non_billable_expense(self, invoke, engine, project):
        result = invoke(
            "expense", "add", str(project.id), "12", "--date", "2025-10-01", "--non-billable"
        )
        assert result.exit_code == 0
        (expense,) = engine.catalog.list_expenses(project.id)
        assert not expense.is_billable

    def test_add_expense_bad_date(self, invoke, project):
        """Test that a malformed date is a usage error."""
        result = invoke("expense", "add", str(project.id), "12", "--date", "01/10/2025")
        assert result.exit_code == 2
        assert "Invalid date format" in result.output

    def test_delete_expense(self, invoke, engine, project):
        invoke("expense", "add", str(project.id), "12")
        (expense,) = engine.catalog.list_expenses()

        result = invoke("expense", "delete", str(expense.id))

        assert result.exit_code == 0
        assert engine.catalog.list_expenses() == []

    def test_edit_expense(self, invoke, engine, project):
        invoke("expense", "add", str(project.id), "12", "--description", "Parking")
        (expense,) = engine.catalog.list_expenses()

        result = invoke("expense", "edit", str(expense.id), "--amount", "15", "--non-billable")

        assert result.exit_code == 0
        assert "15.00" in result.output
        stored = engine.catalog.get_expense(expense.id)
        assert not stored.is_billable
        assert stored.description == "Parking"

    def test_edit_missing_expense(self, invoke):
        result = invoke("expense", "edit", "99", "--amount", "5")
        assert result.exit_code == 4
