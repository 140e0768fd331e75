"""
routes/splits.py — Split route handlers.

Registered at url_prefix=/api/v1/splits.

Endpoints:
  POST   /                                     → 201  add one split
  POST   /expense/:eid/bulk                    → 201  add several splits
  GET    /expense/:eid                         → 200  splits of an expense
  GET    /expense/:eid/status/:status          → 200  splits in one status
  GET    /expense/:eid/status/:status/total    → 200  sum for that status
  GET    /tenant/to-pay                        → 200  caller owes, still open
  GET    /tenant/to-receive                    → 200  owed to caller, still open
  GET    /tenant/history                       → 200  paid, either side
  GET    /tenant/summary                       → 200  totals + counts of the above
  GET    /tenant/:tenant_id                    → 200  every split a tenant owes
  GET    /:id                                  → 200  one split
  PUT    /:id                                  → 200  correction patch
  PATCH  /:id/status                           → 200  status transition
  DELETE /:id                                  → 200  delete one split
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from roomledger.app.errors import AppError, ErrorCode
from roomledger.app.middleware.auth_middleware import require_auth
from roomledger.app.models.split import SplitStatus
from roomledger.app.registry import get_services
from roomledger.app.routes.serializers import envelope, serialize_split
from roomledger.app.schemas.split_schema import (
    BulkCreateSplitsSchema,
    CreateSplitSchema,
    SplitStatusSchema,
    UpdateSplitSchema,
)

splits_bp = Blueprint("splits", __name__)


def _status_from_path(raw: str) -> SplitStatus:
    try:
        return SplitStatus(raw)
    except ValueError:
        raise AppError(
            ErrorCode.INVALID_STATUS,
            f"'{raw}' is not a split status. Use unpaid, pending or paid.",
            400,
            field="status",
        )


def _split_list(splits) -> tuple:
    return jsonify(envelope([serialize_split(s) for s in splits])), 200


# ── Create ─────────────────────────────────────────────────────────────────

@splits_bp.route("", methods=["POST"])
@require_auth
def create_split():
    data = CreateSplitSchema().load(request.get_json(force=True) or {})
    split = get_services().splits.create_split(data)
    return jsonify(envelope(serialize_split(split))), 201


@splits_bp.route("/expense/<int:expense_id>/bulk", methods=["POST"])
@require_auth
def create_splits_bulk(expense_id: int):
    data = BulkCreateSplitsSchema().load(request.get_json(force=True) or {})
    splits = get_services().splits.create_splits_for_expense(expense_id, data["splits"])
    return jsonify(envelope([serialize_split(s) for s in splits])), 201


# ── Expense-scoped reads ───────────────────────────────────────────────────

@splits_bp.route("/expense/<int:expense_id>", methods=["GET"])
@require_auth
def list_expense_splits(expense_id: int):
    return _split_list(get_services().splits.get_splits_by_expense(expense_id))


@splits_bp.route("/expense/<int:expense_id>/status/<string:status>", methods=["GET"])
@require_auth
def list_splits_by_status(expense_id: int, status: str):
    splits = get_services().splits.get_splits_by_status(
        expense_id, _status_from_path(status)
    )
    return _split_list(splits)


@splits_bp.route("/expense/<int:expense_id>/status/<string:status>/total", methods=["GET"])
@require_auth
def total_splits_by_status(expense_id: int, status: str):
    parsed = _status_from_path(status)
    total = get_services().splits.get_total_splits_by_status(expense_id, parsed)
    return jsonify(envelope({
        "expense_id": expense_id,
        "status": parsed.value,
        "total": str(total),
    })), 200


# ── Caller-centric views ───────────────────────────────────────────────────

@splits_bp.route("/tenant/to-pay", methods=["GET"])
@require_auth
def to_pay():
    return _split_list(get_services().aggregation.get_to_pay(g.user_id))


@splits_bp.route("/tenant/to-receive", methods=["GET"])
@require_auth
def to_receive():
    return _split_list(get_services().aggregation.get_to_receive(g.user_id))


@splits_bp.route("/tenant/history", methods=["GET"])
@require_auth
def history():
    return _split_list(get_services().aggregation.get_history(g.user_id))


@splits_bp.route("/tenant/summary", methods=["GET"])
@require_auth
def summary():
    result = get_services().aggregation.get_summary(g.user_id)
    return jsonify(envelope(result.to_dict())), 200


@splits_bp.route("/tenant/<int:tenant_id>", methods=["GET"])
@require_auth
def list_tenant_splits(tenant_id: int):
    return _split_list(get_services().splits.get_splits_by_tenant(tenant_id))


# ── Split-ID routes ────────────────────────────────────────────────────────

@splits_bp.route("/<int:split_id>", methods=["GET"])
@require_auth
def get_split(split_id: int):
    split = get_services().splits.get_split_by_id(split_id)
    return jsonify(envelope(serialize_split(split))), 200


@splits_bp.route("/<int:split_id>", methods=["PUT"])
@require_auth
def update_split(split_id: int):
    """PUT /splits/:id — correction path; sends no notification."""
    data = UpdateSplitSchema().load(request.get_json(force=True) or {})
    split = get_services().splits.update_split(split_id, data)
    return jsonify(envelope(serialize_split(split))), 200


@splits_bp.route("/<int:split_id>/status", methods=["PATCH"])
@require_auth
def update_split_status(split_id: int):
    """PATCH /splits/:id/status — 'paid' notifies the payee."""
    data = SplitStatusSchema().load(request.get_json(force=True) or {})
    split = get_services().splits.update_split_status(split_id, data.status, data.paid_date)
    return jsonify(envelope(serialize_split(split))), 200


@splits_bp.route("/<int:split_id>", methods=["DELETE"])
@require_auth
def delete_split(split_id: int):
    get_services().splits.delete_split(split_id)
    return jsonify(envelope({"deleted": True, "split_id": split_id})), 200
