"""
WorkZen Payroll - Employee Model

Read-side view of the HRMS user record. Accounts, passwords and
two-factor state live in the identity service; payroll only needs the
fields that decide roster eligibility and the data-quality warnings
raised during a payrun (bank account and reporting manager).
"""

import uuid
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, ForeignKey, String, Uuid, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import BaseModel

if TYPE_CHECKING:
    from workzen.models.company import Company


class EmployeeRole(str, Enum):
    """HRMS roles."""
    SUPERADMIN = "superadmin"  # Platform-level, never on a company payroll
    ADMIN = "admin"
    HR = "hr"
    PAYROLL = "payroll"
    EMPLOYEE = "employee"


class EmployeeStatus(str, Enum):
    """Employment status."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Employee(BaseModel):
    """Employee of a company."""

    __tablename__ = "employees"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    employee_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Internal employee ID/staff number",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    designation: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    date_of_join: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    role: Mapped[EmployeeRole] = mapped_column(
        SQLEnum(EmployeeRole),
        default=EmployeeRole.EMPLOYEE,
        nullable=False,
    )
    status: Mapped[EmployeeStatus] = mapped_column(
        SQLEnum(EmployeeStatus),
        default=EmployeeStatus.ACTIVE,
        nullable=False,
    )

    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Bank details
    bank_account_number: Mapped[Optional[str]] = mapped_column(String(34), nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    ifsc_code: Mapped[Optional[str]] = mapped_column(String(11), nullable=True)

    company: Mapped["Company"] = relationship("Company", back_populates="employees")

    __table_args__ = (
        UniqueConstraint("company_id", "employee_code", name="uq_employee_company_code"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def has_bank_account(self) -> bool:
        return bool(self.bank_account_number and self.bank_account_number.strip())

    @property
    def has_manager(self) -> bool:
        return self.manager_id is not None
