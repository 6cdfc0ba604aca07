"""
WorkZen Payroll - API Routers Package
"""

from workzen.routers import payroll, salary

__all__ = ["payroll", "salary"]
