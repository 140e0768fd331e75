"""
services/transaction.py — Unit-of-work helper for ledger writes.

    with atomic(session, "create expense"):
        session.add(expense)
        session.flush()
        session.add_all(splits)

Everything inside the block is committed together or not at all. Store
failures surface as PersistenceError after the rollback; AppErrors raised
inside the block (e.g. NotFoundError) are re-raised unchanged, also after
the rollback.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roomledger.app.errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session, action: str) -> Iterator[Session]:
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("%s failed, transaction rolled back: %s", action, exc)
        raise PersistenceError(f"Could not {action}. No changes were saved.") from exc
    except Exception:
        session.rollback()
        raise
