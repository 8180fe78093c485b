"""requests session that logs every Todoist API round trip.

Used by the ``debug`` command to trace what the automation sends.
"""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


def log_response(response: requests.Response, *args, **kwargs) -> None:
    """Response hook: log method, URL, status and elapsed time."""
    request = response.request
    elapsed_ms = int(response.elapsed.total_seconds() * 1000)
    logger.debug(f"→ {request.method} {request.url}")
    if request.body:
        body = request.body.decode("utf-8", errors="replace") if isinstance(request.body, bytes) else str(request.body)
        logger.debug(f"Request body: {body}")
    logger.debug(f"← {response.status_code} {response.reason} ({elapsed_ms}ms)")


def build_logging_session(session: Optional[requests.Session] = None) -> requests.Session:
    """Attach the logging hook to a session (a new one if None)."""
    session = session or requests.Session()
    session.hooks["response"].append(log_response)
    return session
