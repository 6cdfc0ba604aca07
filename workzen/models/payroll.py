"""
WorkZen Payroll - Payroll Models

Salary structures, payroll configuration and payrun records.

Salary structure composition (percentages come from PayrollConfiguration):
1. Basic Salary: % of monthly wage
2. House Rent Allowance: % of Basic Salary
3. Standard Allowance: % of monthly wage
4. Performance Bonus: % of monthly wage
5. Leave Travel Allowance: % of monthly wage
6. Fixed Allowance: whatever remains, so the six components add up to the wage

Statutory deductions:
- Provident Fund (employee): % of Basic Salary, deducted from pay
- Provident Fund (employer): % of Basic Salary, informational only
- Professional Tax: flat monthly amount
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Uuid,
    Enum as SQLEnum, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import BaseModel, AuditMixin


# ===========================================
# ENUMS
# ===========================================

class WageType(str, Enum):
    """How the monthly wage is determined."""
    FIXED = "fixed"
    VARIABLE = "variable"


class ComponentKind(str, Enum):
    """How a salary component amount is derived."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ComponentCode(str, Enum):
    """The six components of every salary structure, in display order."""
    BASIC_SALARY = "basic_salary"
    HOUSE_RENT_ALLOWANCE = "house_rent_allowance"
    STANDARD_ALLOWANCE = "standard_allowance"
    PERFORMANCE_BONUS = "performance_bonus"
    LEAVE_TRAVEL_ALLOWANCE = "leave_travel_allowance"
    FIXED_ALLOWANCE = "fixed_allowance"


class PayrollStatus(str, Enum):
    """Payroll record status."""
    PENDING = "pending"
    PROCESSED = "processed"
    PAID = "paid"


class PayrunStatus(str, Enum):
    """Payrun batch status."""
    DRAFT = "draft"
    GENERATED = "generated"
    COMPLETED = "completed"


# ===========================================
# PAYROLL CONFIGURATION
# ===========================================

class PayrollConfiguration(BaseModel, AuditMixin):
    """
    Company-wide payroll computation parameters.

    One row per company; saving a configuration replaces the previous values.
    """

    __tablename__ = "payroll_configurations"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Statutory
    pf_employee_percent: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("12"),
    )
    pf_employer_percent: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("12"),
    )
    professional_tax: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False, default=Decimal("200.00"),
        comment="Flat monthly professional tax",
    )

    # Default component ratios
    basic_percent: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("40"),
        comment="% of monthly wage",
    )
    hra_percent_of_basic: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("40"),
        comment="% of basic salary",
    )
    standard_allowance_percent: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("15"),
        comment="% of monthly wage",
    )
    performance_bonus_percent: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("10"),
        comment="% of monthly wage",
    )
    lta_percent: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), nullable=False, default=Decimal("10"),
        comment="% of monthly wage",
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    __table_args__ = (
        CheckConstraint(
            "pf_employee_percent >= 0 AND pf_employer_percent >= 0 AND professional_tax >= 0",
            name="statutory_non_negative",
        ),
        CheckConstraint(
            "basic_percent >= 0 AND hra_percent_of_basic >= 0 AND standard_allowance_percent >= 0 "
            "AND performance_bonus_percent >= 0 AND lta_percent >= 0",
            name="ratios_non_negative",
        ),
    )


# ===========================================
# SALARY STRUCTURE
# ===========================================

class SalaryStructure(BaseModel, AuditMixin):
    """
    Versioned salary breakdown for an employee.

    Structures are never edited in place. A new wage produces a new row and
    the previous active row is flipped to is_active = False in the same
    transaction.
    """

    __tablename__ = "salary_structures"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    wage_type: Mapped[WageType] = mapped_column(
        SQLEnum(WageType), default=WageType.FIXED, nullable=False,
    )
    monthly_wage: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    yearly_wage: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)

    # Computed values
    total_earnings: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False, default=Decimal("0.00"),
        comment="Employee PF + professional tax",
    )
    net_pay: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    components: Mapped[List["SalaryComponent"]] = relationship(
        "SalaryComponent",
        back_populates="structure",
        cascade="all, delete-orphan",
        order_by="SalaryComponent.sort_order",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_salary_structures_employee_active", "employee_id", "is_active"),
        CheckConstraint("monthly_wage > 0", name="positive_wage"),
    )

    def component(self, code: ComponentCode) -> "SalaryComponent":
        """Return the component with the given code."""
        for item in self.components:
            if item.code == code:
                return item
        raise KeyError(code.value)

    @property
    def basic_salary_amount(self) -> Decimal:
        return self.component(ComponentCode.BASIC_SALARY).amount


class SalaryComponent(BaseModel):
    """One line of a salary structure."""

    __tablename__ = "salary_components"

    structure_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("salary_structures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[ComponentCode] = mapped_column(SQLEnum(ComponentCode), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[ComponentKind] = mapped_column(SQLEnum(ComponentKind), nullable=False)
    value: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=4), nullable=False,
        comment="Configured percentage, or the fixed amount",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    structure: Mapped["SalaryStructure"] = relationship(
        "SalaryStructure", back_populates="components",
    )

    __table_args__ = (
        UniqueConstraint("structure_id", "code", name="uq_salary_component_structure_code"),
    )


# ===========================================
# PAYRUN & PAYROLL
# ===========================================

class Payrun(BaseModel):
    """
    Summary of one payroll batch for a company and month.

    Written after every payroll row it aggregates; only the status moves
    afterwards.
    """

    __tablename__ = "payruns"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    total_employees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_payroll: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False,
        comment="Sum of net pay over processed payroll records",
    )
    missing_bank_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    missing_manager_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[PayrunStatus] = mapped_column(
        SQLEnum(PayrunStatus), default=PayrunStatus.GENERATED, nullable=False,
    )
    generated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_payruns_company_month", "company_id", "month"),
        CheckConstraint("processed_count <= total_employees", name="processed_within_roster"),
    )


class Payroll(BaseModel):
    """
    Monthly salary record of one employee within one payrun.

    Amounts are copied from the salary structure at generation time so later
    structure changes do not alter issued payroll.
    """

    __tablename__ = "payrolls"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Not a foreign key: payroll rows are flushed before their payrun row
    payrun_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    salary_structure_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("salary_structures.id", ondelete="SET NULL"),
        nullable=True,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    # Earnings snapshot
    basic_salary: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    house_rent_allowance: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    standard_allowance: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    performance_bonus: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    leave_travel_allowance: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    fixed_allowance: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)

    # Deductions
    pf_employee: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    pf_employer: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False,
        comment="Employer contribution, not deducted from net pay",
    )
    professional_tax: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)

    # Data-quality warnings
    has_bank_account: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Attendance (filled by the attendance module)
    working_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    present_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    leave_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    absent_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[PayrollStatus] = mapped_column(
        SQLEnum(PayrollStatus), default=PayrollStatus.PROCESSED, nullable=False,
    )
    generated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payslip_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_payrolls_employee_month", "employee_id", "month"),
    )
