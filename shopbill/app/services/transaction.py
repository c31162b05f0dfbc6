from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopbill.app.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, description: str) -> Iterator[None]:
    """Run the enclosed writes as one unit and commit them together.

    Any error rolls back everything staged in the block. Database failures
    are re-raised as ``PersistenceError``; other errors propagate unchanged.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database write failed while saving %s", description)
        raise PersistenceError(f"Could not save {description}") from exc
    except Exception:
        db.rollback()
        raise
