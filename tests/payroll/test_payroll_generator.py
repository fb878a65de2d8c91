from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from src.leave_payroll.leave_payroll.core.exceptions import PartialBatchFailure, ValidationError
from src.leave_payroll.leave_payroll.employees.model import Employee
from src.leave_payroll.leave_payroll.payroll.model import EmployeeAdjustment, PayrollRunConfig

OCTOBER = date(2025, 10, 1)


def _add_unpaid_leave(leave_service, employee_id: int, start: date, end: date) -> int:
    return leave_service.admin_add_leave(
        admin_id=99,
        employee_id=employee_id,
        leave_type_id=2,
        start_date=start,
        end_date=end,
        reason="Personal",
    )


def test_two_unpaid_days_in_october(leave_service, payroll_generator):
    _add_unpaid_leave(leave_service, 1, date(2025, 10, 6), date(2025, 10, 7))

    report = payroll_generator.generate(PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1,)))

    assert report.ok
    payment = report.outcomes[0].payment
    assert payment.unpaid_leave_days == 2
    assert payment.leave_deductions == 322.58
    assert payment.total_deductions == 322.58
    assert payment.net_salary == 4677.42
    assert payment.payment_month == OCTOBER


def test_unpaid_leave_outside_the_month_is_ignored(leave_service, payroll_generator):
    _add_unpaid_leave(leave_service, 1, date(2025, 9, 29), date(2025, 9, 30))

    report = payroll_generator.generate(PayrollRunConfig(payment_month=date(2025, 10, 15), employee_ids=(1,)))

    payment = report.outcomes[0].payment
    assert payment.payment_month == OCTOBER
    assert payment.leave_deductions == 0
    assert payment.net_salary == 5000


def test_regenerating_a_month_updates_in_place(leave_service, payroll_generator, payroll_repo):
    config = PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1,))
    first = payroll_generator.generate(config)

    _add_unpaid_leave(leave_service, 1, date(2025, 10, 20), date(2025, 10, 20))
    second = payroll_generator.generate(config)

    assert first.outcomes[0].created is True
    assert second.outcomes[0].created is False
    assert len(payroll_repo.payments) == 1
    assert second.outcomes[0].payment.payment_id == first.outcomes[0].payment.payment_id
    assert second.outcomes[0].payment.unpaid_leave_days == 1


def test_regenerating_with_the_same_inputs_is_stable(leave_service, payroll_generator, payroll_repo):
    _add_unpaid_leave(leave_service, 1, date(2025, 10, 6), date(2025, 10, 7))
    config = PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1,))

    first = payroll_generator.generate(config).outcomes[0]
    second = payroll_generator.generate(config).outcomes[0]

    assert second.created is False
    assert second.payment.payment_id == first.payment.payment_id
    assert second.payment.net_salary == first.payment.net_salary == 4677.42
    assert len(payroll_repo.payments) == 1


def test_empty_selection_means_all_active_employees(payroll_generator, payroll_repo):
    report = payroll_generator.generate(PayrollRunConfig(payment_month=OCTOBER))

    assert {o.employee_id for o in report.outcomes} == {1, 2}
    assert len(payroll_repo.payments) == 2


def test_duplicate_ids_are_processed_once(payroll_generator):
    report = payroll_generator.generate(PayrollRunConfig(payment_month=OCTOBER, employee_ids=(2, 2, 2)))
    assert len(report.outcomes) == 1


def test_one_failing_employee_does_not_stop_the_batch(employees, payroll_generator, payroll_repo):
    employees.employees[3] = Employee(
        employee_id=3,
        full_name="Chen Li",
        category_id=1,
        joined_on=date(2023, 5, 1),
        probation_period_months=3,
    )

    report = payroll_generator.generate(PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1, 3, 2)))

    assert not report.ok
    assert [o.employee_id for o in report.failures] == [3]
    assert "No active salary record" in report.failures[0].error
    assert {o.employee_id for o in report.successes} == {1, 2}
    assert len(payroll_repo.payments) == 2

    with pytest.raises(PartialBatchFailure) as exc:
        report.raise_for_failures()
    assert exc.value.report is report


def test_unknown_employee_is_reported_not_raised(payroll_generator):
    report = payroll_generator.generate(PayrollRunConfig(payment_month=OCTOBER, employee_ids=(404,)))
    assert report.failures[0].error == "Employee does not exist"


def test_negative_net_salary_is_kept_with_a_warning(payroll_generator):
    config = PayrollRunConfig(
        payment_month=OCTOBER,
        employee_ids=(2,),
        adjustments={2: EmployeeAdjustment(advance_amount=4000, advance_reason="Relocation")},
    )

    outcome = payroll_generator.generate(config).outcomes[0]

    assert outcome.ok
    assert outcome.payment.advance_deductions == 4000
    assert outcome.payment.net_salary == -900
    assert any("negative" in w for w in outcome.warnings)


def test_advance_is_recorded_in_notes(payroll_generator):
    config = PayrollRunConfig(
        payment_month=OCTOBER,
        employee_ids=(1,),
        adjustments={1: EmployeeAdjustment(advance_amount=250, advance_reason="Festival")},
    )

    payment = payroll_generator.generate(config).outcomes[0].payment

    assert payment.notes == "Manual advance: 250 - Festival"
    assert payment.total_deductions == 250
    assert payment.net_salary == 4750


def test_unpaid_days_override_replaces_ledger_count(leave_service, payroll_generator):
    _add_unpaid_leave(leave_service, 2, date(2025, 10, 6), date(2025, 10, 7))
    config = PayrollRunConfig(
        payment_month=OCTOBER,
        employee_ids=(2,),
        adjustments={2: EmployeeAdjustment(unpaid_days_override=1)},
    )

    payment = payroll_generator.generate(config).outcomes[0].payment

    assert payment.unpaid_leave_days == 1
    assert payment.leave_deductions == 100
    assert payment.notes == "Manual unpaid days adjustment: 2 -> 1 days"


def test_partial_deduction_percentage(leave_service, payroll_generator):
    _add_unpaid_leave(leave_service, 2, date(2025, 10, 6), date(2025, 10, 9))

    payment = payroll_generator.generate(
        PayrollRunConfig(payment_month=OCTOBER, employee_ids=(2,), deduction_percentage=50)
    ).outcomes[0].payment

    assert payment.unpaid_leave_days == 4
    assert payment.leave_deductions == 200
    assert payment.deduction_percentage == 50


@pytest.mark.parametrize(
    "config",
    [
        PayrollRunConfig(payment_month=OCTOBER, deduction_percentage=150),
        PayrollRunConfig(payment_month=OCTOBER, deduction_percentage=-1),
        PayrollRunConfig(payment_month=OCTOBER, adjustments={1: EmployeeAdjustment(advance_amount=-10)}),
        PayrollRunConfig(payment_month=OCTOBER, adjustments={1: EmployeeAdjustment(unpaid_days_override=-2)}),
        PayrollRunConfig(payment_month=None),
    ],
)
def test_invalid_config_writes_nothing(payroll_generator, payroll_repo, config):
    with pytest.raises(ValidationError):
        payroll_generator.generate(config)
    assert payroll_repo.payments == {}


def test_paid_payment_is_left_unchanged(leave_service, payroll_generator, payment_service, payroll_repo):
    config = PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1,))
    first = payroll_generator.generate(config).outcomes[0].payment
    payment_service.mark_payment(payment_id=first.payment_id, is_paid=True, payment_method="bank", on=date(2025, 10, 31))

    _add_unpaid_leave(leave_service, 1, date(2025, 10, 20), date(2025, 10, 21))
    outcome = payroll_generator.generate(config).outcomes[0]

    assert outcome.ok
    assert outcome.payment.net_salary == 5000
    assert outcome.payment.is_paid
    assert outcome.warnings
    assert payroll_repo.payments[first.payment_id].leave_deductions == 0


def test_preview_does_not_persist(leave_service, payroll_generator, payroll_repo):
    _add_unpaid_leave(leave_service, 1, date(2025, 10, 6), date(2025, 10, 7))

    figures = payroll_generator.preview(PayrollRunConfig(payment_month=OCTOBER), 1)

    assert figures.days_in_month == 31
    assert figures.net_salary == 4677.42
    assert payroll_repo.payments == {}


def test_report_serializes(payroll_generator):
    data = payroll_generator.generate(PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1,))).to_dict()
    assert data["payment_month"] == "2025-10-01"
    assert data["succeeded"] == 1
    assert data["outcomes"][0]["payment"]["net_salary"] == 5000


def test_numeric_strings_in_adjustments_are_accepted(leave_service, payroll_generator):
    _add_unpaid_leave(leave_service, 2, date(2025, 10, 6), date(2025, 10, 7))
    config = PayrollRunConfig(
        payment_month=OCTOBER,
        employee_ids=(2,),
        deduction_percentage="50",
        adjustments={"2": EmployeeAdjustment(advance_amount="100", unpaid_days_override="1")},
    )

    outcome = payroll_generator.generate(config).outcomes[0]

    assert outcome.ok
    assert outcome.payment.unpaid_leave_days == 1
    assert outcome.payment.leave_deductions == 50
    assert outcome.payment.advance_deductions == 100
    assert outcome.payment.net_salary == 2950


def test_payment_marked_paid_mid_run_keeps_its_amounts(leave_service, payroll_generator, payroll_repo, monkeypatch):
    config = PayrollRunConfig(payment_month=OCTOBER, employee_ids=(1,))
    first = payroll_generator.generate(config).outcomes[0].payment
    _add_unpaid_leave(leave_service, 1, date(2025, 10, 20), date(2025, 10, 21))

    find_payment = payroll_repo.find_payment
    calls = []

    def find_then_mark_paid(**kwargs):
        found = find_payment(**kwargs)
        if not calls and found:
            # Another session marks the row paid right after the generator looked at it.
            payroll_repo.payments[found.payment_id] = replace(found, is_paid=True)
        calls.append(kwargs)
        return found

    monkeypatch.setattr(payroll_repo, "find_payment", find_then_mark_paid)
    outcome = payroll_generator.generate(config).outcomes[0]

    stored = payroll_repo.payments[first.payment_id]
    assert outcome.ok
    assert outcome.warnings == ("Payment already marked paid; left unchanged",)
    assert stored.is_paid
    assert stored.leave_deductions == 0
    assert stored.net_salary == 5000
    assert outcome.payment.net_salary == 5000
