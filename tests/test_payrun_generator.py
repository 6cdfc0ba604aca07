"""
Tests for payrun generation.

Covers:
- Roster eligibility and skipped employees
- Totals and data-quality warning counters
- Per-employee failure isolation
- All-or-nothing payrun write
- Month validation, uniqueness and timeout
"""

import asyncio
import logging
import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from workzen.models import EmployeeRole, EmployeeStatus, Payroll, PayrollStatus, Payrun, PayrunStatus
from workzen.services.employee_service import EmployeeService
from workzen.services.payrun_generator import PayrunGenerator, month_bounds
from workzen.services.salary_structure_service import SalaryStructureService
from workzen.utils.error_handling import (
    DuplicatePayrunException,
    InvalidPeriodException,
    PayrunTimeoutException,
    PersistenceException,
)

from tests.conftest import create_employee


def db_error(statement: str) -> OperationalError:
    return OperationalError(statement, {}, Exception("server closed the connection unexpectedly"))


async def count_rows(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar()


@pytest.fixture
def roster_ids():
    return {}


@pytest_asyncio.fixture
async def staffed_company(db_session, test_company, roster_ids):
    """
    Roster of three active employees, two with salary structures.

    - EMP001: 40000/month, bank account, reports to a manager
    - EMP002: 25000/month, no bank account, no manager
    - EMP003: no salary structure
    - EMP004: inactive, has a structure
    - ADMIN0: superadmin, has a structure
    """
    structures = SalaryStructureService(db_session)

    manager = await create_employee(db_session, test_company, "EMP004", status=EmployeeStatus.INACTIVE)
    first = await create_employee(db_session, test_company, "EMP001", manager_id=manager.id)
    second = await create_employee(db_session, test_company, "EMP002", bank_account_number=None)
    third = await create_employee(db_session, test_company, "EMP003", bank_account_number="  ")
    admin = await create_employee(db_session, test_company, "ADMIN0", role=EmployeeRole.SUPERADMIN)

    await structures.create_salary_structure(test_company.id, first.id, 40000)
    await structures.create_salary_structure(test_company.id, second.id, 25000)
    await structures.create_salary_structure(test_company.id, manager.id, 90000)
    await structures.create_salary_structure(test_company.id, admin.id, 150000)

    roster_ids.update(
        company=test_company.id,
        first=first.id,
        second=second.id,
        third=third.id,
        inactive=manager.id,
        admin=admin.id,
    )
    return test_company


class TestMonthBounds:
    """Month parsing."""

    def test_bounds(self):
        assert month_bounds("2026-02") == (date(2026, 2, 1), date(2026, 2, 28))
        assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds("2026-12") == (date(2026, 12, 1), date(2026, 12, 31))

    @pytest.mark.parametrize(
        "month", ["2026-13", "2026-00", "2026-1", "26-01", "2026/01", "2026-10\n", " 2026-10", "", None],
    )
    def test_invalid_month(self, month):
        with pytest.raises(InvalidPeriodException):
            month_bounds(month)


class TestRoster:
    """Eligibility rules."""

    @pytest.mark.asyncio
    async def test_roster_excludes_inactive_and_superadmin(self, db_session, staffed_company, roster_ids):
        roster = await EmployeeService(db_session).list_active_employees(staffed_company.id)

        assert {entry.id for entry in roster} == {
            roster_ids["first"], roster_ids["second"], roster_ids["third"],
        }

    @pytest.mark.asyncio
    async def test_roster_snapshot_flags(self, db_session, staffed_company, roster_ids):
        roster = await EmployeeService(db_session).list_active_employees(staffed_company.id)
        by_id = {entry.id: entry for entry in roster}

        assert by_id[roster_ids["first"]].bank_account_present is True
        assert by_id[roster_ids["first"]].manager_present is True
        assert by_id[roster_ids["second"]].bank_account_present is False
        assert by_id[roster_ids["third"]].bank_account_present is False
        assert by_id[roster_ids["third"]].manager_present is False


class TestGeneratePayrun:
    """Successful generation."""

    @pytest.mark.asyncio
    async def test_summary_counts_and_totals(self, db_session, staffed_company):
        user_id = uuid4()

        payrun = await PayrunGenerator(db_session).generate(staffed_company.id, "2026-10", user_id)

        assert payrun.status == PayrunStatus.GENERATED
        assert payrun.month == "2026-10"
        assert payrun.start_date == date(2026, 10, 1)
        assert payrun.end_date == date(2026, 10, 31)
        assert payrun.total_employees == 3
        assert payrun.processed_count == 2
        # 37880 + 23600
        assert payrun.total_payroll == Decimal("61480.00")
        assert payrun.missing_bank_count == 1
        assert payrun.missing_manager_count == 1
        assert payrun.generated_by_id == user_id

    @pytest.mark.asyncio
    async def test_total_matches_payroll_records(self, db_session, staffed_company):
        payrun = await PayrunGenerator(db_session).generate(staffed_company.id, "2026-10")

        result = await db_session.execute(select(Payroll).where(Payroll.payrun_id == payrun.id))
        payrolls = result.scalars().all()

        assert len(payrolls) == payrun.processed_count
        assert sum(p.net_pay for p in payrolls) == payrun.total_payroll
        assert all(p.status == PayrollStatus.PROCESSED for p in payrolls)

    @pytest.mark.asyncio
    async def test_payroll_snapshot(self, db_session, staffed_company, roster_ids):
        payrun = await PayrunGenerator(db_session).generate(staffed_company.id, "2026-10")

        result = await db_session.execute(
            select(Payroll).where(
                Payroll.payrun_id == payrun.id,
                Payroll.employee_id == roster_ids["first"],
            )
        )
        payroll = result.scalar_one()

        assert payroll.month == "2026-10"
        assert payroll.currency == "INR"
        assert payroll.basic_salary == Decimal("16000.00")
        assert payroll.house_rent_allowance == Decimal("6400.00")
        assert payroll.standard_allowance == Decimal("6000.00")
        assert payroll.performance_bonus == Decimal("4000.00")
        assert payroll.leave_travel_allowance == Decimal("4000.00")
        assert payroll.fixed_allowance == Decimal("3600.00")
        assert payroll.gross_salary == Decimal("40000.00")
        assert payroll.pf_employee == Decimal("1920.00")
        assert payroll.pf_employer == Decimal("1920.00")
        assert payroll.professional_tax == Decimal("200.00")
        assert payroll.total_deductions == Decimal("2120.00")
        assert payroll.net_pay == Decimal("37880.00")
        assert payroll.has_bank_account is True
        assert payroll.has_manager is True
        assert payroll.salary_structure_id is not None
        assert payroll.working_days == 0
        assert payroll.paid_at is None

    @pytest.mark.asyncio
    async def test_company_without_employees(self, db_session, other_company):
        payrun = await PayrunGenerator(db_session).generate(other_company.id, "2026-10")

        assert payrun.total_employees == 0
        assert payrun.processed_count == 0
        assert payrun.total_payroll == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_deductions_use_current_configuration(self, db_session, staffed_company, roster_ids):
        from workzen.services.payroll_service import PayrollService

        await PayrollService(db_session).create_configuration(
            staffed_company.id, {"pf_employee_percent": Decimal("10"), "professional_tax": Decimal("0")},
        )

        payrun = await PayrunGenerator(db_session).generate(staffed_company.id, "2026-11")

        # Structures were created under defaults; PF is recomputed: 1600 + 1000
        assert payrun.total_payroll == Decimal("62400.00")

    @pytest.mark.asyncio
    async def test_deductions_above_gross_clamp_net_pay(self, db_session, test_company, caplog):
        company_id = test_company.id
        structures = SalaryStructureService(db_session)
        intern = await create_employee(db_session, test_company, "INT001")
        regular = await create_employee(db_session, test_company, "EMP001")
        intern_id = intern.id
        # Professional tax of 200 exceeds the whole 100 wage
        await structures.create_salary_structure(company_id, intern_id, 100)
        await structures.create_salary_structure(company_id, regular.id, 40000)

        with caplog.at_level(logging.WARNING, logger="workzen.services.payrun_generator"):
            payrun = await PayrunGenerator(db_session).generate(company_id, "2026-10")

        result = await db_session.execute(select(Payroll).where(Payroll.payrun_id == payrun.id))
        payrolls = {p.employee_id: p for p in result.scalars().all()}

        assert payrolls[intern_id].gross_salary == Decimal("100.00")
        assert payrolls[intern_id].total_deductions == Decimal("204.80")
        assert payrolls[intern_id].net_pay == Decimal("0.00")
        assert payrun.processed_count == 2
        assert payrun.total_payroll == sum(p.net_pay for p in payrolls.values())
        assert payrun.total_payroll == Decimal("37880.00")
        assert any(
            record.levelno == logging.WARNING and "net pay set to 0" in record.getMessage()
            for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_rerun_creates_independent_payrun(self, db_session, staffed_company):
        generator = PayrunGenerator(db_session, enforce_unique_month=False)

        first = await generator.generate(staffed_company.id, "2026-10")
        second = await generator.generate(staffed_company.id, "2026-10")

        assert first.id != second.id
        assert await count_rows(db_session, Payroll) == 4


class TestGenerationFailures:
    """Failure isolation and rollback."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("month", ["2026-13", "2026-10\n"])
    async def test_invalid_month_writes_nothing(self, db_session, staffed_company, month):
        with pytest.raises(InvalidPeriodException):
            await PayrunGenerator(db_session).generate(staffed_company.id, month)

        assert await count_rows(db_session, Payrun) == 0

    @pytest.mark.asyncio
    async def test_duplicate_month_rejected_when_enforced(self, db_session, staffed_company):
        generator = PayrunGenerator(db_session, enforce_unique_month=True)
        first = await generator.generate(staffed_company.id, "2026-10")

        with pytest.raises(DuplicatePayrunException) as exc_info:
            await generator.generate(staffed_company.id, "2026-10")

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["existing_payrun_id"] == str(first.id)
        assert await count_rows(db_session, Payrun) == 1

    @pytest.mark.asyncio
    async def test_failed_employee_write_is_skipped(self, db_session, staffed_company, roster_ids):
        failing_employee = roster_ids["second"]
        original_flush = db_session.flush

        async def flaky_flush(*args, **kwargs):
            if any(
                isinstance(obj, Payroll) and obj.employee_id == failing_employee
                for obj in db_session.new
            ):
                raise db_error("INSERT INTO payrolls")
            return await original_flush(*args, **kwargs)

        with patch.object(db_session, "flush", side_effect=flaky_flush):
            payrun = await PayrunGenerator(db_session).generate(roster_ids["company"], "2026-10")

        assert payrun.total_employees == 3
        assert payrun.processed_count == 1
        assert payrun.total_payroll == Decimal("37880.00")
        assert payrun.missing_bank_count == 0

        result = await db_session.execute(select(Payroll.employee_id))
        assert result.scalars().all() == [roster_ids["first"]]

    @pytest.mark.asyncio
    async def test_failed_payrun_write_persists_nothing(self, db_session, staffed_company, roster_ids):
        original_flush = db_session.flush

        async def flaky_flush(*args, **kwargs):
            if any(isinstance(obj, Payrun) for obj in db_session.new):
                raise db_error("INSERT INTO payruns")
            return await original_flush(*args, **kwargs)

        with patch.object(db_session, "flush", side_effect=flaky_flush):
            with pytest.raises(PersistenceException) as exc_info:
                await PayrunGenerator(db_session).generate(roster_ids["company"], "2026-10")

        assert exc_info.value.details["operation"] == "save payrun"
        assert await count_rows(db_session, Payrun) == 0
        assert await count_rows(db_session, Payroll) == 0

    @pytest.mark.asyncio
    async def test_roster_failure(self, db_session, staffed_company, roster_ids):
        with patch.object(
            EmployeeService,
            "list_active_employees",
            side_effect=db_error("SELECT employees"),
        ):
            with pytest.raises(PersistenceException) as exc_info:
                await PayrunGenerator(db_session).generate(roster_ids["company"], "2026-10")

        assert exc_info.value.details["operation"] == "load employee roster"
        assert await count_rows(db_session, Payrun) == 0

    @pytest.mark.asyncio
    async def test_timeout_rolls_back(self, db_session, staffed_company, roster_ids):
        async def slow_roster(*args, **kwargs):
            await asyncio.sleep(5)
            return []

        with patch.object(EmployeeService, "list_active_employees", side_effect=slow_roster):
            with pytest.raises(PayrunTimeoutException) as exc_info:
                await PayrunGenerator(db_session, timeout_seconds=0.05).generate(
                    roster_ids["company"], "2026-10"
                )

        assert exc_info.value.status_code == 504
        assert await count_rows(db_session, Payrun) == 0
