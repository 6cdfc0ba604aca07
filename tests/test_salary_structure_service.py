"""
Tests for salary structure versioning.
"""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from workzen.models import Company
from workzen.models.payroll import ComponentCode, SalaryComponent, SalaryStructure
from workzen.services.payroll_service import PayrollService
from workzen.services.salary_structure_service import SalaryStructureService
from workzen.utils.error_handling import (
    ComponentsExceedWageException,
    EmployeeNotFoundException,
    InvalidAmountException,
    PersistenceException,
    SalaryStructureNotFoundException,
)

from tests.conftest import create_employee


async def count_active(db, employee_id) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(SalaryStructure)
        .where(SalaryStructure.employee_id == employee_id, SalaryStructure.is_active == True)  # noqa: E712
    )
    return result.scalar()


class TestCreateSalaryStructure:
    """Creating the first structure for an employee."""

    @pytest.mark.asyncio
    async def test_create_with_default_ratios(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)
        user_id = uuid4()

        structure = await service.create_salary_structure(
            company_id=test_company.id,
            employee_id=test_employee.id,
            monthly_wage=Decimal("40000"),
            effective_from=date(2026, 4, 1),
            created_by_id=user_id,
        )

        assert structure.is_active is True
        assert structure.monthly_wage == Decimal("40000.00")
        assert structure.yearly_wage == Decimal("480000.00")
        assert structure.currency == "INR"
        assert structure.total_earnings == Decimal("40000.00")
        assert structure.total_deductions == Decimal("2120.00")
        assert structure.net_pay == Decimal("37880.00")
        assert structure.effective_from == date(2026, 4, 1)
        assert structure.created_by_id == user_id
        assert len(structure.components) == 6
        assert structure.basic_salary_amount == Decimal("16000.00")

    @pytest.mark.asyncio
    async def test_components_persisted(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)
        structure = await service.create_salary_structure(
            test_company.id, test_employee.id, 40000,
        )

        result = await db_session.execute(
            select(func.sum(SalaryComponent.amount)).where(SalaryComponent.structure_id == structure.id)
        )
        assert Decimal(str(result.scalar())) == Decimal("40000")

    @pytest.mark.asyncio
    async def test_effective_from_defaults_to_today(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)
        structure = await service.create_salary_structure(test_company.id, test_employee.id, 30000)

        assert structure.effective_from == date.today()

    @pytest.mark.asyncio
    async def test_uses_company_configuration(self, db_session, test_company, test_employee):
        await PayrollService(db_session).create_configuration(
            test_company.id,
            {
                "basic_percent": Decimal("50"),
                "hra_percent_of_basic": Decimal("20"),
                "professional_tax": Decimal("0"),
            },
        )
        service = SalaryStructureService(db_session)

        structure = await service.create_salary_structure(test_company.id, test_employee.id, 40000)

        assert structure.component(ComponentCode.BASIC_SALARY).amount == Decimal("20000.00")
        assert structure.total_deductions == Decimal("2400.00")
        assert structure.net_pay == Decimal("37600.00")

    @pytest.mark.asyncio
    async def test_currency_follows_company_without_configuration(self, db_session):
        company = Company(id=uuid4(), name="Initech Inc", currency="USD")
        db_session.add(company)
        await db_session.commit()
        employee = await create_employee(db_session, company, "US001")
        service = SalaryStructureService(db_session)

        structure = await service.create_salary_structure(company.id, employee.id, 5000)

        assert structure.currency == "USD"

    @pytest.mark.asyncio
    async def test_configuration_currency_wins_over_company(self, db_session, test_company, test_employee):
        await PayrollService(db_session).create_configuration(test_company.id, {"currency": "EUR"})
        service = SalaryStructureService(db_session)

        structure = await service.create_salary_structure(test_company.id, test_employee.id, 40000)

        assert structure.currency == "EUR"

    @pytest.mark.asyncio
    async def test_sub_cent_wage_rejected(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)

        with pytest.raises(InvalidAmountException):
            await service.create_salary_structure(test_company.id, test_employee.id, Decimal("100.005"))

        assert await count_active(db_session, test_employee.id) == 0

    @pytest.mark.asyncio
    async def test_net_pay_floored_at_zero(self, db_session, test_company, test_employee):
        await PayrollService(db_session).create_configuration(
            test_company.id, {"professional_tax": Decimal("50000")},
        )
        service = SalaryStructureService(db_session)

        structure = await service.create_salary_structure(test_company.id, test_employee.id, 10000)

        assert structure.net_pay == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_unknown_employee(self, db_session, test_company):
        service = SalaryStructureService(db_session)

        with pytest.raises(EmployeeNotFoundException):
            await service.create_salary_structure(test_company.id, uuid4(), 40000)

    @pytest.mark.asyncio
    async def test_employee_of_other_company(self, db_session, other_company, test_employee):
        service = SalaryStructureService(db_session)

        with pytest.raises(EmployeeNotFoundException):
            await service.create_salary_structure(other_company.id, test_employee.id, 40000)

    @pytest.mark.asyncio
    async def test_invalid_wage(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)

        with pytest.raises(InvalidAmountException):
            await service.create_salary_structure(test_company.id, test_employee.id, 0)

        assert await count_active(db_session, test_employee.id) == 0

    @pytest.mark.asyncio
    async def test_components_exceed_wage_leaves_previous_structure(
        self, db_session, test_company, test_employee
    ):
        service = SalaryStructureService(db_session)
        original = await service.create_salary_structure(test_company.id, test_employee.id, 40000)

        await PayrollService(db_session).create_configuration(
            test_company.id,
            {
                "basic_percent": Decimal("50"),
                "hra_percent_of_basic": Decimal("50"),
                "standard_allowance_percent": Decimal("16.67"),
                "performance_bonus_percent": Decimal("8.33"),
                "lta_percent": Decimal("8.33"),
            },
        )

        with pytest.raises(ComponentsExceedWageException):
            await service.create_salary_structure(test_company.id, test_employee.id, 40000)

        active = await service.get_salary_structure(test_company.id, test_employee.id)
        assert active.id == original.id


class TestStructureVersioning:
    """Replacing a structure keeps history and exactly one active version."""

    @pytest.mark.asyncio
    async def test_repeated_replacement_leaves_one_active(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)

        for wage in (30000, 35000, 42000):
            await service.update_salary_structure(test_company.id, test_employee.id, wage)

        assert await count_active(db_session, test_employee.id) == 1
        active = await service.get_salary_structure(test_company.id, test_employee.id)
        assert active.monthly_wage == Decimal("42000.00")

    @pytest.mark.asyncio
    async def test_history_keeps_every_version(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)
        await service.create_salary_structure(
            test_company.id, test_employee.id, 30000, effective_from=date(2025, 4, 1),
        )
        await service.update_salary_structure(
            test_company.id, test_employee.id, 36000, effective_from=date(2026, 4, 1),
        )

        history = await service.list_structure_history(test_company.id, test_employee.id)

        assert [s.monthly_wage for s in history] == [Decimal("36000.00"), Decimal("30000.00")]
        assert [s.is_active for s in history] == [True, False]

    @pytest.mark.asyncio
    async def test_failed_write_keeps_previous_structure_active(
        self, db_session, test_company, test_employee
    ):
        # The rollback expires loaded objects; keep plain ids
        company_id, employee_id = test_company.id, test_employee.id
        service = SalaryStructureService(db_session)
        original = await service.create_salary_structure(company_id, employee_id, 30000)
        original_id = original.id

        error = OperationalError("INSERT INTO salary_structures", {}, Exception("database is locked"))
        with patch.object(db_session, "commit", side_effect=error):
            with pytest.raises(PersistenceException):
                await service.update_salary_structure(company_id, employee_id, 50000)

        assert await count_active(db_session, employee_id) == 1
        active = await service.get_active_structure(employee_id, company_id)
        assert active.id == original_id
        assert active.monthly_wage == Decimal("30000.00")

    @pytest.mark.asyncio
    async def test_get_without_structure(self, db_session, test_company, test_employee):
        service = SalaryStructureService(db_session)

        assert await service.get_active_structure(test_employee.id) is None
        with pytest.raises(SalaryStructureNotFoundException):
            await service.get_salary_structure(test_company.id, test_employee.id)
