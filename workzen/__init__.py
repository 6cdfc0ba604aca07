"""
WorkZen Payroll - multi-tenant payroll computation and payrun generation.
"""
