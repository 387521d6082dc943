from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formhub.core.errors import PersistenceFailure

logger = logging.getLogger(__name__)


def parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return uuid.UUID(text)
    except ValueError:
        return None


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise store errors as PersistenceFailure."""
    try:
        yield
    except SQLAlchemyError as exc:
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.debug("rollback_failed action=%s", action, exc_info=True)
        logger.error("Failed to %s: %s", action, exc)
        raise PersistenceFailure(f"Failed to {action}: {exc}") from exc
