from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, today_local
from ..common.responses import json_errors
from ..core.enums import LeaveStatus
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def _body() -> dict:
        return request.get_json(silent=True) or {}

    def _int(value, field_name: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} is required")

    def _status(value):
        try:
            return LeaveStatus(value) if value else None
        except ValueError:
            raise ValidationError(f"Invalid status: {value!r}")

    def _optional_int(name: str):
        v = request.args.get(name)
        return _int(v, name) if v not in (None, "") else None

    def _request_row(r) -> dict:
        return {
            "request_id": r.request_id,
            "employee_id": r.employee_id,
            "leave_type_id": r.leave_type_id,
            "start_date": r.start_date.strftime("%Y-%m-%d"),
            "end_date": r.end_date.strftime("%Y-%m-%d"),
            "days_requested": r.days_requested,
            "reason": r.reason,
            "status": r.status.value,
            "rejection_reason": r.rejection_reason or "",
        }

    @app.route("/api/leave/requests", methods=["GET"], endpoint="list_leave_requests")
    @json_errors
    def list_leave_requests():
        rows = container.leave_service.list_requests(
            employee_id=_optional_int("employee_id"),
            status=_status(request.args.get("status")),
        )
        return jsonify({"success": True, "requests": [_request_row(r) for r in rows]})

    @app.route("/api/leave/requests", methods=["POST"], endpoint="create_leave_request")
    @json_errors
    def create_leave_request():
        data = _body()
        request_id = container.leave_service.create_request(
            employee_id=_int(data.get("employee_id"), "Employee"),
            leave_type_id=_int(data.get("leave_type_id"), "Leave type"),
            start_date=parse_iso_date(data.get("start_date") or ""),
            end_date=parse_iso_date(data.get("end_date") or ""),
            reason=data.get("reason", ""),
            days_requested=data.get("days_requested"),
        )
        return jsonify({"success": True, "request_id": request_id}), 201

    @app.route("/api/admin/leave/requests", methods=["POST"], endpoint="admin_add_leave")
    @json_errors
    def admin_add_leave():
        data = _body()
        request_id = container.leave_service.admin_add_leave(
            admin_id=_int(data.get("admin_id"), "Admin"),
            employee_id=_int(data.get("employee_id"), "Employee"),
            leave_type_id=_int(data.get("leave_type_id"), "Leave type"),
            start_date=parse_iso_date(data.get("start_date") or ""),
            end_date=parse_iso_date(data.get("end_date") or ""),
            reason=data.get("reason", ""),
            days_requested=data.get("days_requested"),
        )
        return jsonify({"success": True, "request_id": request_id}), 201

    @app.route("/api/admin/leave/requests/<int:request_id>/approve", methods=["POST"], endpoint="approve_leave")
    @json_errors
    def approve_leave(request_id: int):
        added = container.leave_service.approve(
            request_id=request_id,
            admin_id=_int(_body().get("admin_id"), "Admin"),
        )
        return jsonify({"success": True, "days_recorded": added})

    @app.route("/api/admin/leave/requests/<int:request_id>/reject", methods=["POST"], endpoint="reject_leave")
    @json_errors
    def reject_leave(request_id: int):
        data = _body()
        container.leave_service.reject(
            request_id=request_id,
            admin_id=_int(data.get("admin_id"), "Admin"),
            reason=data.get("reason", ""),
        )
        return jsonify({"success": True})

    @app.route("/api/leave/requests/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_leave")
    @json_errors
    def cancel_leave(request_id: int):
        data = _body()
        container.leave_service.cancel(
            request_id=request_id,
            actor_id=_int(data.get("actor_id"), "Actor"),
            reason=data.get("reason", ""),
        )
        return jsonify({"success": True})

    @app.route("/api/leave/balances/<int:employee_id>", methods=["GET"], endpoint="employee_leave_balances")
    @json_errors
    def employee_leave_balances(employee_id: int):
        year = _optional_int("year") or today_local().year
        balances = container.leave_service.get_balances(
            employee_id=employee_id,
            year=year,
            month=_optional_int("month"),
        )
        return jsonify({"success": True, "balances": [b.to_dict() for b in balances]})

    @app.route("/api/admin/leave/balances", methods=["GET"], endpoint="leave_balance_overview")
    @json_errors
    def leave_balance_overview():
        year = _optional_int("year") or today_local().year
        rows = container.leave_service.balance_overview(year=year, month=_optional_int("month"))
        return jsonify({"success": True, "employees": [s.to_dict() for s in rows]})

    @app.route("/api/admin/leave/rollover", methods=["GET"], endpoint="leave_rollover_summary")
    @json_errors
    def leave_rollover_summary():
        summary = container.leave_service.rollover_summary(
            from_year=_int(request.args.get("from_year"), "From year"),
            to_year=_int(request.args.get("to_year"), "To year"),
        )
        return jsonify({"success": True, "summary": asdict(summary)})

    @app.route("/api/admin/leave/rollover", methods=["POST"], endpoint="leave_rollover")
    @json_errors
    def leave_rollover():
        data = _body()
        result = container.leave_service.rollover(
            from_year=_int(data.get("from_year"), "From year"),
            to_year=_int(data.get("to_year"), "To year"),
            max_rollover_days=data.get("max_rollover_days", container.max_rollover_days),
        )
        return jsonify({"success": True, "result": asdict(result)})
