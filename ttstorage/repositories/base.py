"""Helpers shared by the SQLite repositories."""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Iterable, Mapping, Optional, Tuple

from common.logging_config import get_logger
from ttstorage.exceptions import DuplicateReason, ErrorKind, ServiceError, duplicate_file, validation_error
from ttstorage.types import SortDirection

logger = get_logger(__name__)


@contextmanager
def translate_db_errors(
    code: str, message: str, duplicate_constraint: Optional[str] = None
) -> Generator[None, None, None]:
    """
    Re-raise sqlite failures as ServiceError.

    A violation of ``duplicate_constraint`` (the columns sqlite names in its
    UNIQUE error) becomes DUPLICATE_FILE, everything else METADATA_STORE
    with the caller's code.
    """
    try:
        yield
    except sqlite3.IntegrityError as e:
        if duplicate_constraint is not None and f"UNIQUE constraint failed: {duplicate_constraint}" in str(e):
            logger.warning(f"Unique constraint rejected write: {e}")
            raise duplicate_file(DuplicateReason.FILENAME) from e
        logger.error(f"{message}: {e}", exc_info=True)
        raise ServiceError(ErrorKind.METADATA_STORE, code, message) from e
    except sqlite3.Error as e:
        logger.error(f"{message}: {e}", exc_info=True)
        raise ServiceError(ErrorKind.METADATA_STORE, code, message) from e


def build_order_by(
    sort: Iterable[Tuple[str, SortDirection]],
    columns: Mapping[str, str],
    tiebreaker: str,
) -> str:
    """
    Build an ORDER BY clause from API sort fields.

    Only names present in ``columns`` are accepted, so nothing from the
    request reaches the SQL text verbatim.
    """
    clauses = []
    for field_name, direction in sort:
        column = columns.get(field_name)
        if column is None:
            raise validation_error(
                f"cannot sort by '{field_name}', allowed fields: {', '.join(sorted(columns))}"
            )
        clauses.append(f"{column} {'DESC' if direction == SortDirection.DESC else 'ASC'}")
    clauses.append(f"{tiebreaker} ASC")
    return "ORDER BY " + ", ".join(clauses)
