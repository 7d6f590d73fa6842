"""Unit-of-work helper shared by the mutating services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import TransientStoreFailure

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, action: str) -> Iterator[None]:
    """Commit the block as one unit or roll it back entirely.

    Store errors surface as `TransientStoreFailure`; any other exception is
    re-raised unchanged after the rollback.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        logger.warning("%s rolled back: %s", action, err)
        raise TransientStoreFailure(f"{action} could not be completed, please retry") from err
    except Exception:
        db.rollback()
        raise
