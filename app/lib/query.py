from typing import Any, Callable, List, Optional, Type

from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import DeclarativeMeta
from sqlalchemy.orm.exc import StaleDataError

from app.errors.exceptions import ConcurrencyError
from app.extensions import db
from app.lib.logger import logger


def select_by_id(model: Type[DeclarativeMeta], pk: Any):
    if pk is None:
        return None
    return db.session.get(model, pk)


def select_with_filter_one(
    model: Type[DeclarativeMeta],
    filters: Optional[List[Any]] = None,
    order_by: Optional[List[Any]] = None,
):
    stmt = select(model)
    if filters:
        for cond in filters:
            stmt = stmt.where(cond)
    if order_by:
        stmt = stmt.order_by(*order_by)
    return db.session.execute(stmt).scalars().first()


def run_in_transaction(work: Callable, *args, **kwargs):
    """Run ``work`` and commit once, retrying on optimistic version conflicts.

    ``work`` must re-read every record it mutates: a conflict rolls the
    session back and calls it again from scratch. Any other exception
    rolls back and propagates.
    """
    retries = current_app.config.get("CONCURRENCY_RETRIES", 3)
    for attempt in range(retries + 1):
        try:
            result = work(*args, **kwargs)
            db.session.commit()
            return result
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(
                f"Version conflict in {getattr(work, '__name__', work)} "
                f"(attempt {attempt + 1}/{retries + 1}): {e}"
            )
        except Exception:
            db.session.rollback()
            raise
    raise ConcurrencyError()
