"""
WorkZen Payroll - Payroll Schemas

Pydantic schemas for payroll configuration, salary structure, payrun and
payroll record requests and responses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from workzen.models.payroll import (
    ComponentCode,
    ComponentKind,
    PayrollStatus,
    PayrunStatus,
    WageType,
)


MONTH_PATTERN = r"^(\d{4})-(0[1-9]|1[0-2])$"


# ===========================================
# PAYROLL CONFIGURATION SCHEMAS
# ===========================================

class PayrollConfigurationCreate(BaseModel):
    """Create or replace payroll configuration request."""
    pf_employee_percent: Decimal = Field(default=Decimal("12"), ge=0)
    pf_employer_percent: Decimal = Field(default=Decimal("12"), ge=0)
    professional_tax: Decimal = Field(default=Decimal("200"), ge=0)
    basic_percent: Decimal = Field(default=Decimal("40"), ge=0, description="% of monthly wage")
    hra_percent_of_basic: Decimal = Field(default=Decimal("40"), ge=0, description="% of basic salary")
    standard_allowance_percent: Decimal = Field(default=Decimal("15"), ge=0)
    performance_bonus_percent: Decimal = Field(default=Decimal("10"), ge=0)
    lta_percent: Decimal = Field(default=Decimal("10"), ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class PayrollConfigurationResponse(BaseModel):
    """Payroll configuration response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    pf_employee_percent: Decimal
    pf_employer_percent: Decimal
    professional_tax: Decimal
    basic_percent: Decimal
    hra_percent_of_basic: Decimal
    standard_allowance_percent: Decimal
    performance_bonus_percent: Decimal
    lta_percent: Decimal
    currency: str


# ===========================================
# SALARY STRUCTURE SCHEMAS
# ===========================================

class SalaryStructureCreate(BaseModel):
    """Create salary structure request."""
    employee_id: UUID
    monthly_wage: Decimal
    effective_from: Optional[date] = None


class SalaryStructureUpdate(BaseModel):
    """New wage for an employee; stored as a new structure version."""
    monthly_wage: Decimal
    effective_from: Optional[date] = None


class SalaryComponentResponse(BaseModel):
    """Salary structure line."""
    model_config = ConfigDict(from_attributes=True)

    code: ComponentCode
    name: str
    kind: ComponentKind
    value: Decimal
    amount: Decimal


class SalaryStructureResponse(BaseModel):
    """Salary structure response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    company_id: UUID
    wage_type: WageType
    monthly_wage: Decimal
    yearly_wage: Decimal
    currency: str
    effective_from: date
    components: List[SalaryComponentResponse] = []
    total_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    is_active: bool
    created_by_id: Optional[UUID] = None


# ===========================================
# PAYRUN SCHEMAS
# ===========================================

class PayrunCreate(BaseModel):
    """Generate payrun request."""
    month: str = Field(..., pattern=MONTH_PATTERN, description="YYYY-MM")


class PayrunResponse(BaseModel):
    """Payrun summary."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    month: str
    start_date: date
    end_date: date
    total_employees: int
    processed_count: int
    total_payroll: Decimal
    missing_bank_count: int
    missing_manager_count: int
    status: PayrunStatus
    generated_by_id: Optional[UUID] = None
    generated_at: datetime
    completed_at: Optional[datetime] = None


class PayrunListResponse(BaseModel):
    """Paginated payrun list."""
    items: List[PayrunResponse]
    total: int
    page: int
    limit: int
    pages: int


# ===========================================
# PAYROLL SCHEMAS
# ===========================================

class PayrollResponse(BaseModel):
    """Payroll record of one employee for one month."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    employee_id: UUID
    payrun_id: UUID
    salary_structure_id: Optional[UUID] = None
    month: str
    currency: str

    basic_salary: Decimal
    house_rent_allowance: Decimal
    standard_allowance: Decimal
    performance_bonus: Decimal
    leave_travel_allowance: Decimal
    fixed_allowance: Decimal
    gross_salary: Decimal

    pf_employee: Decimal
    pf_employer: Decimal
    professional_tax: Decimal
    total_deductions: Decimal
    net_pay: Decimal

    has_bank_account: bool
    has_manager: bool

    working_days: int
    present_days: int
    leave_days: int
    absent_days: int

    status: PayrollStatus
    generated_by_id: Optional[UUID] = None
    generated_at: datetime
    paid_at: Optional[datetime] = None
    payslip_url: Optional[str] = None


class OrphanedPayrollReport(BaseModel):
    """Payroll records without a payrun row."""
    count: int
    items: List[PayrollResponse]
