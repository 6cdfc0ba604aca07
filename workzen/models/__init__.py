"""
WorkZen Payroll - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from workzen.models.base import BaseModel, TimestampMixin, AuditMixin
from workzen.models.company import Company
from workzen.models.employee import Employee, EmployeeRole, EmployeeStatus
from workzen.models.payroll import (
    WageType,
    ComponentKind,
    ComponentCode,
    PayrollStatus,
    PayrunStatus,
    PayrollConfiguration,
    SalaryStructure,
    SalaryComponent,
    Payrun,
    Payroll,
)

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "AuditMixin",
    "Company",
    "Employee",
    "EmployeeRole",
    "EmployeeStatus",
    "WageType",
    "ComponentKind",
    "ComponentCode",
    "PayrollStatus",
    "PayrunStatus",
    "PayrollConfiguration",
    "SalaryStructure",
    "SalaryComponent",
    "Payrun",
    "Payroll",
]
