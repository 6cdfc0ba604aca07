"""
WorkZen Payroll - Services Package

Business logic services.
"""

from workzen.services.employee_service import EmployeeService, RosterEntry
from workzen.services.salary_structure_service import SalaryStructureService
from workzen.services.payrun_generator import PayrunGenerator
from workzen.services.payroll_service import PayrollService

__all__ = [
    "EmployeeService",
    "RosterEntry",
    "SalaryStructureService",
    "PayrunGenerator",
    "PayrollService",
]
