"""
WorkZen Payroll - Employee Service

Read access to the employee roster. Employee records are owned by the
HRMS user module; payroll only reads them.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.models.employee import Employee, EmployeeRole, EmployeeStatus


@dataclass(frozen=True)
class RosterEntry:
    """Snapshot of the fields a payrun needs from one employee."""
    id: uuid.UUID
    bank_account_present: bool
    manager_present: bool


class EmployeeService:
    """Roster queries scoped to one company."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active_employees(self, company_id: uuid.UUID) -> List[RosterEntry]:
        """
        Employees eligible for payroll: active, and not platform superadmins.

        Ordered by employee code so payruns process employees in a stable order.
        """
        result = await self.db.execute(
            select(Employee)
            .where(
                and_(
                    Employee.company_id == company_id,
                    Employee.status == EmployeeStatus.ACTIVE,
                    Employee.role != EmployeeRole.SUPERADMIN,
                )
            )
            .order_by(Employee.employee_code)
        )
        return [
            RosterEntry(
                id=employee.id,
                bank_account_present=employee.has_bank_account,
                manager_present=employee.has_manager,
            )
            for employee in result.scalars().all()
        ]

    async def get_employee(
        self,
        company_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Optional[Employee]:
        """Get employee by ID."""
        result = await self.db.execute(
            select(Employee).where(
                and_(
                    Employee.id == employee_id,
                    Employee.company_id == company_id,
                )
            )
        )
        return result.scalar_one_or_none()
