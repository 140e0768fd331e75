"""
routes/expenses.py — Expense route handlers.

Registered at url_prefix=/api/v1/expenses.

Layer rules:
  - Parse, validate, call ONE service method, return the envelope.
  - No business logic and no queries here. Services commit their own work.
  - AppError and marshmallow ValidationError propagate to the global handler.

Endpoints:
  POST   /                              → 201  create expense + equal splits
  GET    /group/:gid                    → 200  group expenses, newest first
  GET    /group/:gid/category/:category → 200  group expenses in one category
  GET    /group/:gid/total              → 200  sum of receipt totals
  GET    /:id                           → 200  expense with its splits
  PUT    /:id                           → 200  edit fields (splits untouched)
  DELETE /:id                           → 200  delete expense and its splits
"""

from __future__ import annotations

import dataclasses

from flask import Blueprint, g, jsonify, request

from roomledger.app.middleware.auth_middleware import require_auth
from roomledger.app.registry import get_services
from roomledger.app.routes.serializers import envelope, serialize_expense
from roomledger.app.schemas.expense_schema import CreateExpenseSchema, UpdateExpenseSchema

expenses_bp = Blueprint("expenses", __name__)


@expenses_bp.route("", methods=["POST"])
@require_auth
def create_expense():
    """POST /expenses — the caller's tenant is the creator."""
    services = get_services()
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    creator = services.aggregation.resolve_tenant(g.user_id)

    expense = services.expenses.create_expense(
        dataclasses.replace(data, creator_id=creator.id)
    )
    return jsonify(envelope(serialize_expense(expense))), 201


@expenses_bp.route("/group/<int:group_id>", methods=["GET"])
@require_auth
def list_group_expenses(group_id: int):
    expenses = get_services().expenses.get_expenses_by_group(group_id)
    return jsonify(envelope([serialize_expense(e) for e in expenses])), 200


@expenses_bp.route("/group/<int:group_id>/category/<string:category>", methods=["GET"])
@require_auth
def list_category_expenses(group_id: int, category: str):
    expenses = get_services().expenses.get_expenses_by_category(group_id, category)
    return jsonify(envelope([serialize_expense(e, include_splits=False) for e in expenses])), 200


@expenses_bp.route("/group/<int:group_id>/total", methods=["GET"])
@require_auth
def group_total(group_id: int):
    total = get_services().expenses.get_total_expenses_by_group(group_id)
    return jsonify(envelope({"group_id": group_id, "total": str(total)})), 200


@expenses_bp.route("/<int:expense_id>", methods=["GET"])
@require_auth
def get_expense(expense_id: int):
    expense = get_services().expenses.get_expense_by_id(expense_id)
    return jsonify(envelope(serialize_expense(expense))), 200


@expenses_bp.route("/<int:expense_id>", methods=["PUT"])
@require_auth
def update_expense(expense_id: int):
    """
    PUT /expenses/:id — edits category, title, description, receipt_total.
    Existing splits keep their amounts even when receipt_total changes.
    """
    data = UpdateExpenseSchema().load(request.get_json(force=True) or {})
    expense = get_services().expenses.update_expense(expense_id, data)
    return jsonify(envelope(serialize_expense(expense))), 200


@expenses_bp.route("/<int:expense_id>", methods=["DELETE"])
@require_auth
def delete_expense(expense_id: int):
    get_services().expenses.delete_expense(expense_id)
    return jsonify(envelope({"deleted": True, "expense_id": expense_id})), 200
