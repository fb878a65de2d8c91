from __future__ import annotations

import csv
import io
from dataclasses import asdict

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, parse_month
from ..common.responses import json_errors
from ..core.exceptions import ValidationError
from ..container import Container
from .model import EmployeeAdjustment, PaymentFigures, PayrollRunConfig
from .payment_service import EXPORT_FIELDS


def register(app: Flask, container: Container) -> None:
    def _body() -> dict:
        return request.get_json(silent=True) or {}

    def _int(value, field_name: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} is required")

    def _run_config(data: dict) -> PayrollRunConfig:
        adjustments = {}
        for employee_id, adj in (data.get("adjustments") or {}).items():
            adjustments[_int(employee_id, "Employee")] = EmployeeAdjustment(
                advance_amount=adj.get("advance_amount", 0.0),
                advance_reason=adj.get("advance_reason", ""),
                unpaid_days_override=adj.get("unpaid_days_override"),
            )
        processed_by = data.get("processed_by")
        return PayrollRunConfig(
            payment_month=parse_month(data.get("payment_month") or ""),
            employee_ids=tuple(_int(i, "Employee") for i in data.get("employee_ids") or ()),
            deduction_percentage=data.get("deduction_percentage", container.default_deduction_percentage),
            adjustments=adjustments,
            processed_by=_int(processed_by, "Processed by") if processed_by is not None else None,
        )

    def _figures_dict(f: PaymentFigures) -> dict:
        out = asdict(f)
        out["payment_month"] = f.payment_month.strftime("%Y-%m-%d")
        return out

    def _write_payments_csv(*, rows, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/admin/payroll/generate", methods=["POST"], endpoint="generate_payroll")
    @json_errors
    def generate_payroll():
        report = container.payroll_generator.generate(_run_config(_body()))
        return jsonify({"success": report.ok, "report": report.to_dict()})

    @app.route("/api/admin/payroll/preview/<int:employee_id>", methods=["POST"], endpoint="preview_payroll")
    @json_errors
    def preview_payroll(employee_id: int):
        figures = container.payroll_generator.preview(_run_config(_body()), employee_id)
        return jsonify({"success": True, "figures": _figures_dict(figures)})

    @app.route("/api/admin/payroll/payments", methods=["GET"], endpoint="list_salary_payments")
    @json_errors
    def list_salary_payments():
        month = request.args.get("month")
        employee_id = request.args.get("employee_id")
        payments = container.payment_service.list_payments(
            payment_month=parse_month(month) if month else None,
            employee_id=_int(employee_id, "Employee") if employee_id else None,
        )
        return jsonify({"success": True, "payments": [p.to_dict() for p in payments]})

    @app.route("/api/admin/payroll/payments/<int:payment_id>/status", methods=["POST"], endpoint="mark_salary_payment")
    @json_errors
    def mark_salary_payment(payment_id: int):
        data = _body()
        on = data.get("payment_date")
        is_paid = data.get("is_paid", True)
        if not isinstance(is_paid, bool):
            raise ValidationError("is_paid must be true or false")
        payment = container.payment_service.mark_payment(
            payment_id=payment_id,
            is_paid=is_paid,
            payment_method=data.get("payment_method", ""),
            payment_reference=data.get("payment_reference", ""),
            notes=data.get("notes", ""),
            on=parse_iso_date(on) if on else None,
        )
        return jsonify({"success": True, "payment": payment.to_dict()})

    @app.route("/api/admin/payroll/payments/<int:payment_id>", methods=["PATCH"], endpoint="edit_salary_payment")
    @json_errors
    def edit_salary_payment(payment_id: int):
        data = _body()
        payment = container.payment_service.edit_payment(
            payment_id=payment_id,
            unpaid_leave_days=data.get("unpaid_leave_days"),
            deduction_percentage=data.get("deduction_percentage"),
            advance_deductions=data.get("advance_deductions"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "payment": payment.to_dict()})

    @app.route("/api/admin/payroll/payments/<int:payment_id>", methods=["DELETE"], endpoint="delete_salary_payment")
    @json_errors
    def delete_salary_payment(payment_id: int):
        container.payment_service.delete_payment(payment_id=payment_id)
        return jsonify({"success": True})

    @app.route("/api/admin/payroll/analytics", methods=["GET"], endpoint="payroll_analytics")
    @json_errors
    def payroll_analytics():
        start = request.args.get("start")
        end = request.args.get("end")
        result = container.payment_service.analytics(
            start_month=parse_month(start) if start else None,
            end_month=parse_month(end) if end else None,
        )
        return jsonify({"success": True, "analytics": asdict(result)})

    @app.route("/api/admin/payroll/export", methods=["GET"], endpoint="export_salary_payments")
    @json_errors
    def export_salary_payments():
        month = parse_month(request.args.get("month") or "")
        rows = container.payment_service.export_rows(payment_month=month)
        return _write_payments_csv(rows=rows, filename=f"salary_payments_{month:%Y_%m}.csv")

    @app.route("/api/admin/salaries", methods=["POST"], endpoint="set_employee_salary")
    @json_errors
    def set_employee_salary():
        data = _body()
        salary_id = container.payment_service.set_salary(
            employee_id=_int(data.get("employee_id"), "Employee"),
            base_salary=data.get("base_salary"),
            effective_from=parse_iso_date(data.get("effective_from") or ""),
            currency=data.get("currency"),
            notes=data.get("notes", ""),
        )
        return jsonify({"success": True, "salary_id": salary_id}), 201

    @app.route("/api/admin/salaries/<int:salary_id>/deactivate", methods=["POST"], endpoint="deactivate_employee_salary")
    @json_errors
    def deactivate_employee_salary(salary_id: int):
        on = _body().get("effective_to")
        container.payment_service.deactivate_salary(salary_id=salary_id, on=parse_iso_date(on) if on else None)
        return jsonify({"success": True})
