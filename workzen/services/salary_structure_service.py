"""
WorkZen Payroll - Salary Structure Service

Versioned salary structures. A structure row is never edited; a new wage
creates a new version and deactivates the previous one in the same
transaction, so an employee always has at most one active structure.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import select, update, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.config import settings
from workzen.models.company import Company
from workzen.models.payroll import PayrollConfiguration, SalaryComponent, SalaryStructure
from workzen.services.employee_service import EmployeeService
from workzen.services.salary_calculator import (
    calculate_net_pay,
    compute_deductions,
    compute_structure,
)
from workzen.utils.error_handling import (
    EmployeeNotFoundException,
    PersistenceException,
    SalaryStructureNotFoundException,
)

logger = logging.getLogger(__name__)


async def load_payroll_configuration(
    db: AsyncSession,
    company_id: uuid.UUID,
) -> Optional[PayrollConfiguration]:
    """The company's saved payroll configuration, or None when it has none."""
    result = await db.execute(
        select(PayrollConfiguration).where(PayrollConfiguration.company_id == company_id)
    )
    return result.scalar_one_or_none()


class SalaryStructureService:
    """Create, version and read employee salary structures."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.employees = EmployeeService(db)

    async def create_salary_structure(
        self,
        company_id: uuid.UUID,
        employee_id: uuid.UUID,
        monthly_wage,
        effective_from: Optional[date] = None,
        created_by_id: Optional[uuid.UUID] = None,
    ) -> SalaryStructure:
        """
        Compute and store a new active salary structure for an employee.

        Components come from the company's payroll configuration, or the
        default ratios and the company's currency when none is saved. Any
        previously active structure is deactivated in the same commit.

        Raises:
            EmployeeNotFoundException: employee is not part of the company
            InvalidAmountException: wage is not a positive number
            ComponentsExceedWageException: configured ratios exceed the wage
            PersistenceException: the write failed; nothing is changed
        """
        employee = await self.employees.get_employee(company_id, employee_id)
        if employee is None:
            raise EmployeeNotFoundException(employee_id)

        config = await load_payroll_configuration(self.db, company_id)
        if config is not None:
            currency = config.currency
        else:
            company = await self.db.get(Company, company_id)
            currency = (company.currency if company else None) or settings.default_currency
        breakdown = compute_structure(monthly_wage, config, currency=currency)
        deductions = compute_deductions(breakdown.basic_salary, config)
        total_deductions = deductions.total_employee_deductions
        total_earnings = breakdown.total_earnings

        structure = SalaryStructure(
            employee_id=employee_id,
            company_id=company_id,
            wage_type=breakdown.wage_type,
            monthly_wage=breakdown.monthly_wage,
            yearly_wage=breakdown.yearly_wage,
            currency=breakdown.currency,
            effective_from=effective_from or date.today(),
            total_earnings=total_earnings,
            total_deductions=total_deductions,
            net_pay=calculate_net_pay(total_earnings, total_deductions),
            is_active=breakdown.is_active,
            created_by_id=created_by_id,
            components=[
                SalaryComponent(
                    code=line.code,
                    name=line.name,
                    kind=line.kind,
                    value=line.value,
                    amount=line.amount,
                    sort_order=line.sort_order,
                )
                for line in breakdown.components
            ],
        )

        try:
            deactivated = await self._deactivate_active(employee_id, updated_by_id=created_by_id)
            self.db.add(structure)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save salary structure for employee {employee_id}: {e}")
            raise PersistenceException("save salary structure", original_error=e)

        logger.info(
            f"Salary structure {structure.id} created for employee {employee_id} "
            f"({structure.currency} {structure.monthly_wage}/month, replaced {deactivated})"
        )
        return structure

    async def update_salary_structure(
        self,
        company_id: uuid.UUID,
        employee_id: uuid.UUID,
        monthly_wage,
        effective_from: Optional[date] = None,
        updated_by_id: Optional[uuid.UUID] = None,
    ) -> SalaryStructure:
        """Record a new wage as a new structure version."""
        return await self.create_salary_structure(
            company_id=company_id,
            employee_id=employee_id,
            monthly_wage=monthly_wage,
            effective_from=effective_from,
            created_by_id=updated_by_id,
        )

    async def get_active_structure(
        self,
        employee_id: uuid.UUID,
        company_id: Optional[uuid.UUID] = None,
    ) -> Optional[SalaryStructure]:
        """The employee's active structure, or None."""
        query = select(SalaryStructure).where(
            and_(
                SalaryStructure.employee_id == employee_id,
                SalaryStructure.is_active == True,  # noqa: E712
            )
        )
        if company_id is not None:
            query = query.where(SalaryStructure.company_id == company_id)

        result = await self.db.execute(
            query.order_by(SalaryStructure.effective_from.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_salary_structure(
        self,
        company_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> SalaryStructure:
        structure = await self.get_active_structure(employee_id, company_id)
        if structure is None:
            raise SalaryStructureNotFoundException(employee_id)
        return structure

    async def list_structure_history(
        self,
        company_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> List[SalaryStructure]:
        """All versions for an employee, newest first."""
        result = await self.db.execute(
            select(SalaryStructure)
            .where(
                and_(
                    SalaryStructure.employee_id == employee_id,
                    SalaryStructure.company_id == company_id,
                )
            )
            .order_by(SalaryStructure.effective_from.desc(), SalaryStructure.created_at.desc())
        )
        return list(result.scalars().all())

    async def _deactivate_active(
        self,
        employee_id: uuid.UUID,
        updated_by_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Flip every active structure of the employee to inactive. Does not commit."""
        result = await self.db.execute(
            update(SalaryStructure)
            .where(
                and_(
                    SalaryStructure.employee_id == employee_id,
                    SalaryStructure.is_active == True,  # noqa: E712
                )
            )
            .values(is_active=False, updated_by_id=updated_by_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
