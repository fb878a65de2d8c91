from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Optional

from .core.constants import (
    DEFAULT_CURRENCY,
    DEFAULT_DEDUCTION_PERCENTAGE,
    DEFAULT_MAX_ROLLOVER_DAYS,
    DEFAULT_PROBATION_MONTHS,
)
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .leave.balance import BalanceAggregator
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.mysql_policy_repository import MySQLPolicyRepository
from .leave.policy_resolver import PolicyResolver
from .leave.service import LeaveService
from .payroll.calculator.standard_calculator import CalendarProrationCalculator
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.payment_service import PaymentService
from .payroll.service import PayrollGenerator


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    employees_repo: MySQLEmployeeRepository
    policies_repo: MySQLPolicyRepository
    leave_repo: MySQLLeaveRepository
    payroll_repo: MySQLPayrollRepository

    leave_service: LeaveService
    payroll_generator: PayrollGenerator
    payment_service: PaymentService

    default_deduction_percentage: float = DEFAULT_DEDUCTION_PERCENTAGE
    max_rollover_days: float = DEFAULT_MAX_ROLLOVER_DAYS


def build_container(*, db_config: dict, settings: Optional[ModuleType] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    probation_months = int(getattr(settings, "DEFAULT_PROBATION_MONTHS", DEFAULT_PROBATION_MONTHS))
    currency = str(getattr(settings, "DEFAULT_CURRENCY", DEFAULT_CURRENCY))

    employees_repo = MySQLEmployeeRepository(conn)
    policies_repo = MySQLPolicyRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    payroll_repo = MySQLPayrollRepository(conn)

    calculator = CalendarProrationCalculator()
    leave_service = LeaveService(
        leave_repo,
        policies_repo,
        employees_repo,
        resolver=PolicyResolver(policies_repo),
        aggregator=BalanceAggregator(),
        default_probation_months=probation_months,
    )
    payroll_generator = PayrollGenerator(payroll_repo, employees_repo, leave_service, calculator=calculator)
    payment_service = PaymentService(payroll_repo, employees_repo, calculator=calculator, default_currency=currency)

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        policies_repo=policies_repo,
        leave_repo=leave_repo,
        payroll_repo=payroll_repo,
        leave_service=leave_service,
        payroll_generator=payroll_generator,
        payment_service=payment_service,
        default_deduction_percentage=float(getattr(settings, "DEFAULT_DEDUCTION_PERCENTAGE", DEFAULT_DEDUCTION_PERCENTAGE)),
        max_rollover_days=float(getattr(settings, "MAX_ROLLOVER_DAYS", DEFAULT_MAX_ROLLOVER_DAYS)),
    )
