"""Leave balance & payroll accrual engine.

This package is organized by feature modules (employees, leave, payroll)
with a thin Flask controller layer over service/repository layers.
"""
