"""
WorkZen Payroll - Utilities
"""
