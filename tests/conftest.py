from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

import pytest

from src.leave_payroll.leave_payroll.core.enums import LeaveStatus
from src.leave_payroll.leave_payroll.employees.model import Employee, EmployeeCategory
from src.leave_payroll.leave_payroll.leave.model import CarryForward, LeaveDay, LeavePolicy, LeaveRequest, LeaveType
from src.leave_payroll.leave_payroll.leave.service import LeaveService
from src.leave_payroll.leave_payroll.payroll.model import PaymentFigures, SalaryPayment, SalaryRecord
from src.leave_payroll.leave_payroll.payroll.payment_service import PaymentService
from src.leave_payroll.leave_payroll.payroll.service import PayrollGenerator


class InMemoryEmployees:
    def __init__(self, employees=(), categories=()):
        self.employees: dict[int, Employee] = {e.employee_id: e for e in employees}
        self.categories: dict[int, EmployeeCategory] = {c.category_id: c for c in categories}

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self.employees.get(int(employee_id))

    def list_active(self):
        return sorted((e for e in self.employees.values() if e.is_active), key=lambda e: e.full_name)

    def list_by_ids(self, employee_ids):
        ids = {int(i) for i in employee_ids}
        return [e for e in self.employees.values() if e.employee_id in ids]

    def get_category(self, category_id: int) -> Optional[EmployeeCategory]:
        return self.categories.get(int(category_id))


class InMemoryPolicies:
    def __init__(self, leave_types=(), policies=()):
        self.leave_types: dict[int, LeaveType] = {t.leave_type_id: t for t in leave_types}
        self.policies: list[LeavePolicy] = list(policies)

    def list_leave_types(self):
        return list(self.leave_types.values())

    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        return self.leave_types.get(int(leave_type_id))

    def list_active_policies(self, *, category_id, leave_type_id=None):
        return [
            p
            for p in self.policies
            if p.is_active
            and p.category_id == int(category_id)
            and (leave_type_id is None or p.leave_type_id == int(leave_type_id))
        ]


class InMemoryLeave:
    def __init__(self):
        self._next_id = 1
        self.requests: dict[int, LeaveRequest] = {}
        self.days: dict[tuple[int, date], LeaveDay] = {}
        self.carry: dict[tuple[int, int, int], CarryForward] = {}
        self.last_limit = None

    def create_request(
        self,
        *,
        employee_id,
        leave_type_id,
        start_date,
        end_date,
        days_requested,
        reason,
        status=LeaveStatus.PENDING,
        approved_by=None,
        days=(),
    ):
        rid = self._next_id
        self._next_id += 1
        self.requests[rid] = LeaveRequest(
            request_id=rid,
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            start_date=start_date,
            end_date=end_date,
            days_requested=days_requested,
            reason=reason,
            status=status,
            created_at=datetime(2025, 1, 1, 9, 0, 0),
            approved_by=approved_by,
        )
        self.add_days(days=[replace(d, request_id=rid) for d in days])
        return rid

    def get_request(self, *, request_id):
        return self.requests.get(int(request_id))

    def list_requests(self, *, employee_id=None, status=None, start_from=None, start_to=None, limit=500):
        self.last_limit = limit
        out = [
            r
            for r in self.requests.values()
            if (employee_id is None or r.employee_id == int(employee_id))
            and (status is None or r.status == status)
            and (start_from is None or r.start_date >= start_from)
            and (start_to is None or r.start_date <= start_to)
        ]
        return out if limit is None else out[:limit]

    def decide(self, *, request_id, status, from_status, decided_by, rejection_reason=None, days=(), clear_days=False):
        req = self.requests.get(int(request_id))
        if not req or req.status != from_status:
            return False
        self.requests[req.request_id] = replace(
            req,
            status=status,
            approved_by=decided_by,
            approved_at=datetime(2025, 1, 2, 9, 0, 0),
            rejection_reason=rejection_reason,
        )
        if clear_days:
            for key in [k for k in self.days if k[0] == req.request_id]:
                del self.days[key]
        self.add_days(days=days)
        return True

    def add_days(self, *, days):
        added = 0
        for d in days:
            key = (d.request_id, d.leave_date)
            if key not in self.days:
                self.days[key] = d
                added += 1
        return added

    def count_days(self, *, request_id):
        return sum(1 for rid, _ in self.days if rid == int(request_id))

    def sum_unpaid_days(self, *, employee_id, start, end):
        return sum(
            d.day_value
            for d in self.days.values()
            if d.employee_id == int(employee_id) and start <= d.leave_date <= end and not d.is_paid
        )

    def list_carry_forwards(self, *, year, employee_id=None):
        return [
            cf
            for cf in self.carry.values()
            if cf.year == int(year) and (employee_id is None or cf.employee_id == int(employee_id))
        ]

    def replace_carry_forwards(self, *, year, rows):
        for key in [k for k in self.carry if k[2] == int(year)]:
            del self.carry[key]
        for cf in rows:
            self.carry[(cf.employee_id, cf.leave_type_id, cf.year)] = cf
        return len(rows)


class InMemoryPayroll:
    def __init__(self, salaries=()):
        self._next_salary_id = 1
        self._next_payment_id = 1
        self.salaries: dict[int, SalaryRecord] = {}
        self.payments: dict[int, SalaryPayment] = {}
        for s in salaries:
            self.salaries[s.salary_id] = s
            self._next_salary_id = max(self._next_salary_id, s.salary_id + 1)

    def get_active_salary(self, employee_id):
        return next((s for s in self.salaries.values() if s.employee_id == int(employee_id) and s.is_active), None)

    def replace_active_salary(self, *, employee_id, base_salary, currency, effective_from, notes=None):
        current = self.get_active_salary(employee_id)
        if current:
            self.salaries[current.salary_id] = replace(
                current, is_active=False, effective_to=effective_from - timedelta(days=1)
            )
        sid = self._next_salary_id
        self._next_salary_id += 1
        self.salaries[sid] = SalaryRecord(
            salary_id=sid,
            employee_id=int(employee_id),
            base_salary=float(base_salary),
            currency=currency,
            effective_from=effective_from,
            notes=notes,
        )
        return sid

    def deactivate_salary(self, *, salary_id, effective_to):
        s = self.salaries.get(int(salary_id))
        if not s or not s.is_active:
            return False
        self.salaries[s.salary_id] = replace(s, is_active=False, effective_to=effective_to)
        return True

    def get_payment(self, *, payment_id):
        return self.payments.get(int(payment_id))

    def find_payment(self, *, employee_id, payment_month):
        return next(
            (p for p in self.payments.values() if p.employee_id == int(employee_id) and p.payment_month == payment_month),
            None,
        )

    def upsert_payment(self, figures: PaymentFigures):
        existing = self.find_payment(employee_id=figures.employee_id, payment_month=figures.payment_month)
        amounts = dict(
            base_salary=figures.base_salary,
            leave_deductions=figures.leave_deductions,
            unpaid_leave_days=figures.unpaid_leave_days,
            deduction_percentage=figures.deduction_percentage,
            advance_deductions=figures.advance_deductions,
            total_deductions=figures.total_deductions,
            net_salary=figures.net_salary,
            notes=figures.notes,
            processed_by=figures.processed_by,
        )
        if existing and existing.is_paid:
            return existing, False
        if existing:
            self.payments[existing.payment_id] = replace(existing, **amounts)
            return self.payments[existing.payment_id], False

        pid = self._next_payment_id
        self._next_payment_id += 1
        self.payments[pid] = SalaryPayment(
            payment_id=pid,
            employee_id=figures.employee_id,
            payment_month=figures.payment_month,
            **amounts,
        )
        return self.payments[pid], True

    def update_amounts(self, *, payment_id, figures: PaymentFigures):
        p = self.payments.get(int(payment_id))
        if not p:
            return False
        self.payments[p.payment_id] = replace(
            p,
            leave_deductions=figures.leave_deductions,
            unpaid_leave_days=figures.unpaid_leave_days,
            deduction_percentage=figures.deduction_percentage,
            advance_deductions=figures.advance_deductions,
            total_deductions=figures.total_deductions,
            net_salary=figures.net_salary,
            notes=figures.notes,
        )
        return True

    def update_status(self, *, payment_id, is_paid, payment_date, payment_method, payment_reference, notes=None):
        p = self.payments.get(int(payment_id))
        if not p:
            return False
        self.payments[p.payment_id] = replace(
            p,
            is_paid=is_paid,
            payment_date=payment_date,
            payment_method=payment_method,
            payment_reference=payment_reference,
            notes=notes if notes is not None else p.notes,
        )
        return True

    def list_payments(self, *, payment_month=None, start_month=None, end_month=None, employee_id=None):
        return [
            p
            for p in self.payments.values()
            if (payment_month is None or p.payment_month == payment_month)
            and (start_month is None or p.payment_month >= start_month)
            and (end_month is None or p.payment_month <= end_month)
            and (employee_id is None or p.employee_id == int(employee_id))
        ]

    def delete_payment(self, *, payment_id):
        return self.payments.pop(int(payment_id), None) is not None


ANNUAL = LeaveType(leave_type_id=1, name="Annual", is_paid=True)
UNPAID = LeaveType(leave_type_id=2, name="Unpaid", is_paid=False)
SICK = LeaveType(leave_type_id=3, name="Sick", is_paid=True, requires_approval=False)

PERMANENT = EmployeeCategory(category_id=1, name="Permanent")
INTERN = EmployeeCategory(category_id=2, name="Intern", is_paid_leave_eligible=False)


@pytest.fixture
def employees():
    return InMemoryEmployees(
        employees=[
            Employee(
                employee_id=1,
                full_name="Asha Rao",
                category_id=1,
                joined_on=date(2020, 1, 1),
                probation_period_months=3,
            ),
            Employee(
                employee_id=2,
                full_name="Bilal Khan",
                category_id=1,
                joined_on=date(2025, 1, 1),
                probation_period_months=3,
            ),
        ],
        categories=[PERMANENT, INTERN],
    )


@pytest.fixture
def policies():
    return InMemoryPolicies(
        leave_types=[ANNUAL, UNPAID, SICK],
        policies=[
            LeavePolicy(
                policy_id=1,
                category_id=1,
                leave_type_id=1,
                max_days_per_year=20,
                probation_max_days=5,
                created_at=datetime(2024, 1, 1),
            ),
            LeavePolicy(
                policy_id=2,
                category_id=1,
                leave_type_id=2,
                max_days_per_year=10,
                probation_max_days=10,
                created_at=datetime(2024, 1, 1),
            ),
        ],
    )


@pytest.fixture
def leave_repo():
    return InMemoryLeave()


@pytest.fixture
def payroll_repo():
    return InMemoryPayroll(
        salaries=[
            SalaryRecord(salary_id=1, employee_id=1, base_salary=5000.0, effective_from=date(2024, 1, 1)),
            SalaryRecord(salary_id=2, employee_id=2, base_salary=3100.0, effective_from=date(2025, 1, 1)),
        ]
    )


@pytest.fixture
def leave_service(leave_repo, policies, employees):
    return LeaveService(leave_repo, policies, employees)


@pytest.fixture
def payroll_generator(payroll_repo, employees, leave_service):
    return PayrollGenerator(payroll_repo, employees, leave_service)


@pytest.fixture
def payment_service(payroll_repo, employees):
    return PaymentService(payroll_repo, employees)
