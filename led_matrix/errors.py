"""
Translation of database errors into HTTP errors for the API routers.
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError

from led_matrix.database import is_retryable_error

logger = logging.getLogger(__name__)

# PostgreSQL error code -> (HTTP status, message)
PG_ERROR_MAP = {
    "23505": (status.HTTP_409_CONFLICT, "A record with this value already exists"),
    "23503": (status.HTTP_400_BAD_REQUEST, "Referenced record does not exist"),
    "23502": (status.HTTP_400_BAD_REQUEST, "Required field is missing"),
    "23514": (status.HTTP_400_BAD_REQUEST, "Value violates check constraint"),
    "22001": (status.HTTP_400_BAD_REQUEST, "Value is too long"),
    "22P02": (status.HTTP_400_BAD_REQUEST, "Invalid input format"),
}


def _pg_code(error: BaseException) -> Optional[str]:
    if isinstance(error, DBAPIError):
        return getattr(error.orig, "pgcode", None)
    return None


def handle_db_error(error: Exception, context: str = "db") -> HTTPException:
    """
    Map a database exception to an HTTPException.

    Known PostgreSQL constraint errors become 4xx responses, transient
    connection errors (after retries) become 503, anything else 500.
    """
    pg_code = _pg_code(error)
    if pg_code in PG_ERROR_MAP:
        status_code, message = PG_ERROR_MAP[pg_code]
        logger.error(f"[{context}] PostgreSQL error {pg_code}: {error}")
        return HTTPException(status_code=status_code, detail=message)

    if is_retryable_error(error):
        logger.error(f"[{context}] Connection error after retries: {error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection error, please try again",
        )

    logger.error(f"[{context}] Unexpected database error: {error}", exc_info=error)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected database error occurred",
    )
