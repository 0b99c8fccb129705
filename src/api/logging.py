"""SQLite request logging for operator API calls."""

import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

from fastapi import HTTPException, Request

from api.dependencies import get_client_ip

logger = logging.getLogger(__name__)


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    archived_day: str | None = None
    active_day_utc: str | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)


def log_request(log: RequestLog, conn: sqlite3.Connection) -> None:
    """Write request log to SQLite database."""
    conn.execute("BEGIN")
    try:
        conn.execute(
            """
            INSERT INTO api_requests (
                request_id, timestamp, endpoint, method, client_ip,
                status_code, error_code, error_message, processing_time_ms,
                archived_day, active_day_utc
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                log.request_id,
                log.timestamp,
                log.endpoint,
                log.method,
                log.client_ip,
                log.status_code,
                log.error_code,
                log.error_message,
                log.processing_time_ms,
                log.archived_day,
                log.active_day_utc,
            ),
        )

        for detail_type, message in log.details:
            conn.execute(
                """
                INSERT INTO api_request_details (request_id, detail_type, message)
                VALUES (?, ?, ?)
            """,
                (log.request_id, detail_type, message),
            )
    except sqlite3.Error:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


@contextmanager
def track_request(request: Request, conn: sqlite3.Connection) -> Iterator[RequestLog]:
    """
    Record one API call; the route fills in result fields on the yielded log.

    HTTP errors raised inside the block are captured before propagating.
    """
    start_time = time.time()
    request_log = RequestLog(
        endpoint=request.url.path,
        method=request.method,
        client_ip=get_client_ip(request),
        status_code=200,
    )
    try:
        yield request_log
    except HTTPException as e:
        request_log.status_code = e.status_code
        if isinstance(e.detail, dict):
            request_log.error_code = e.detail.get("code")
            request_log.error_message = e.detail.get("error")
            for detail in e.detail.get("details", []):
                request_log.details.append(("validation_error", detail))
        else:
            request_log.error_message = str(e.detail)
        raise
    except Exception as e:
        request_log.status_code = 500
        request_log.error_code = "INTERNAL_ERROR"
        request_log.error_message = str(e)
        raise
    finally:
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        try:
            log_request(request_log, conn)
        except sqlite3.Error as e:
            # Don't fail the request if logging fails
            logger.warning("Could not log request %s: %s", request_log.request_id, e)
