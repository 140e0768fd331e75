"""
registry.py — Service objects for one application instance.

create_app() builds a ServiceRegistry once and stores it in
app.extensions["roomledger"]. Routes fetch it with get_services(); tests can
build their own registry around any session and dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.orm import Session

from roomledger.app.services.aggregation_service import AggregationService
from roomledger.app.services.expense_service import ExpenseService
from roomledger.app.services.notification_service import NotificationDispatch
from roomledger.app.services.split_service import SplitService

EXTENSION_KEY = "roomledger"


@dataclass
class ServiceRegistry:
    dispatch: NotificationDispatch
    expenses: ExpenseService
    splits: SplitService
    aggregation: AggregationService


def build_services(session: Session, dispatch: NotificationDispatch) -> ServiceRegistry:
    return ServiceRegistry(
        dispatch=dispatch,
        expenses=ExpenseService(session, dispatch),
        splits=SplitService(session, dispatch),
        aggregation=AggregationService(session),
    )


def get_services() -> ServiceRegistry:
    return current_app.extensions[EXTENSION_KEY]
