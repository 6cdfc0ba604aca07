"""
WorkZen Payroll - Salary Calculator

Pure functions that split a monthly wage into salary components and derive
statutory deductions. No database access.

Default ratios (used when a company has not saved a PayrollConfiguration):
- Basic Salary: 40% of monthly wage
- House Rent Allowance: 40% of Basic Salary
- Standard Allowance: 15% of monthly wage
- Performance Bonus: 10% of monthly wage
- Leave Travel Allowance: 10% of monthly wage
- Fixed Allowance: remainder of the wage

Default deductions:
- Provident Fund: 12% of Basic (employee), 12% of Basic (employer)
- Professional Tax: 200 per month
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

from workzen.models.payroll import ComponentCode, ComponentKind, WageType
from workzen.utils.error_handling import (
    ComponentsExceedWageException,
    InvalidAmountException,
)


CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MONTHS_PER_YEAR = 12

COMPONENT_NAMES = {
    ComponentCode.BASIC_SALARY: "Basic Salary",
    ComponentCode.HOUSE_RENT_ALLOWANCE: "House Rent Allowance",
    ComponentCode.STANDARD_ALLOWANCE: "Standard Allowance",
    ComponentCode.PERFORMANCE_BONUS: "Performance Bonus",
    ComponentCode.LEAVE_TRAVEL_ALLOWANCE: "Leave Travel Allowance",
    ComponentCode.FIXED_ALLOWANCE: "Fixed Allowance",
}


@dataclass(frozen=True)
class PayrollRates:
    """Payroll ratios with the same attribute names as PayrollConfiguration."""
    pf_employee_percent: Decimal = Decimal("12")
    pf_employer_percent: Decimal = Decimal("12")
    professional_tax: Decimal = Decimal("200")
    basic_percent: Decimal = Decimal("40")
    hra_percent_of_basic: Decimal = Decimal("40")
    standard_allowance_percent: Decimal = Decimal("15")
    performance_bonus_percent: Decimal = Decimal("10")
    lta_percent: Decimal = Decimal("10")
    currency: str = "INR"


DEFAULT_PAYROLL_RATES = PayrollRates()


@dataclass
class ComponentAmount:
    """One computed salary component."""
    code: ComponentCode
    name: str
    kind: ComponentKind
    value: Decimal
    amount: Decimal
    sort_order: int


@dataclass
class SalaryBreakdown:
    """Result of splitting a monthly wage into its components."""
    monthly_wage: Decimal
    yearly_wage: Decimal
    currency: str
    components: List[ComponentAmount] = field(default_factory=list)
    wage_type: WageType = WageType.FIXED
    is_active: bool = True

    @property
    def total_earnings(self) -> Decimal:
        return sum((c.amount for c in self.components), ZERO)

    def amount(self, code: ComponentCode) -> Decimal:
        for component in self.components:
            if component.code == code:
                return component.amount
        raise KeyError(code.value)

    @property
    def basic_salary(self) -> Decimal:
        return self.amount(ComponentCode.BASIC_SALARY)


@dataclass
class DeductionBreakdown:
    """Statutory deductions for one month."""
    pf_employee: Decimal
    pf_employer: Decimal
    professional_tax: Decimal

    @property
    def total_employee_deductions(self) -> Decimal:
        """Employer PF is a company cost, not an employee deduction."""
        return self.pf_employee + self.professional_tax


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _percent_of(base: Decimal, percent: Any) -> Decimal:
    return (base * _to_decimal(percent) / 100).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_structure(
    monthly_wage: Any,
    config: Optional[Any] = None,
    currency: Optional[str] = None,
) -> SalaryBreakdown:
    """
    Split a monthly wage into the six salary components.

    Args:
        monthly_wage: Gross monthly wage, must be greater than zero
        config: PayrollConfiguration or PayrollRates, defaults when None
        currency: Overrides the currency of the configuration

    Raises:
        InvalidAmountException: wage is not a positive number of whole cents
        ComponentsExceedWageException: percentage components exceed the wage
    """
    try:
        wage = _to_decimal(monthly_wage)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountException(monthly_wage, field="monthly_wage")
    if not wage.is_finite() or wage <= 0:
        raise InvalidAmountException(monthly_wage, field="monthly_wage")
    if wage != wage.quantize(CENT):
        raise InvalidAmountException(
            monthly_wage,
            field="monthly_wage",
            message=f"Invalid amount: {monthly_wage}. Wage must not have more than 2 decimal places.",
        )
    wage = wage.quantize(CENT)

    rates = config if config is not None else DEFAULT_PAYROLL_RATES
    currency = currency or rates.currency or DEFAULT_PAYROLL_RATES.currency

    basic = _percent_of(wage, rates.basic_percent)
    percentage_lines = [
        (ComponentCode.BASIC_SALARY, rates.basic_percent, basic),
        (ComponentCode.HOUSE_RENT_ALLOWANCE, rates.hra_percent_of_basic,
         _percent_of(basic, rates.hra_percent_of_basic)),
        (ComponentCode.STANDARD_ALLOWANCE, rates.standard_allowance_percent,
         _percent_of(wage, rates.standard_allowance_percent)),
        (ComponentCode.PERFORMANCE_BONUS, rates.performance_bonus_percent,
         _percent_of(wage, rates.performance_bonus_percent)),
        (ComponentCode.LEAVE_TRAVEL_ALLOWANCE, rates.lta_percent,
         _percent_of(wage, rates.lta_percent)),
    ]

    components = [
        ComponentAmount(
            code=code,
            name=COMPONENT_NAMES[code],
            kind=ComponentKind.PERCENTAGE,
            value=_to_decimal(percent),
            amount=amount,
            sort_order=index,
        )
        for index, (code, percent, amount) in enumerate(percentage_lines)
    ]

    allocated = sum((c.amount for c in components), ZERO)
    residual = wage - allocated
    if residual < 0:
        raise ComponentsExceedWageException(wage, allocated, currency)

    components.append(
        ComponentAmount(
            code=ComponentCode.FIXED_ALLOWANCE,
            name=COMPONENT_NAMES[ComponentCode.FIXED_ALLOWANCE],
            kind=ComponentKind.FIXED,
            value=residual,
            amount=residual,
            sort_order=len(components),
        )
    )

    return SalaryBreakdown(
        monthly_wage=wage,
        yearly_wage=wage * MONTHS_PER_YEAR,
        currency=currency,
        components=components,
    )


def compute_deductions(basic_salary: Any, config: Optional[Any] = None) -> DeductionBreakdown:
    """Provident fund on basic salary plus the flat professional tax."""
    rates = config if config is not None else DEFAULT_PAYROLL_RATES
    basic = _to_decimal(basic_salary)

    return DeductionBreakdown(
        pf_employee=_percent_of(basic, rates.pf_employee_percent),
        pf_employer=_percent_of(basic, rates.pf_employer_percent),
        professional_tax=_to_decimal(rates.professional_tax),
    )


def calculate_net_pay(gross: Decimal, employee_deductions: Decimal) -> Decimal:
    """Gross minus employee deductions, floored at zero."""
    net = _to_decimal(gross) - _to_decimal(employee_deductions)
    if net < 0:
        return ZERO
    return net


def recalculate_structure(structure: Any, config: Optional[Any] = None) -> SalaryBreakdown:
    """Breakdown of an existing structure's wage under another configuration."""
    return compute_structure(structure.monthly_wage, config, structure.currency)
