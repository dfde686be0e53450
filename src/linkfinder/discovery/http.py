"""HTTP existence check - the network side of probing"""
import logging
import threading
from typing import Callable, List, Optional

import requests

from ..config import get_user_agent
from ..models import ProbeOutcome

logger = logging.getLogger(__name__)

FOUND_STATUSES = {200}
MISSING_STATUSES = {404, 410}


class HttpExistsCheck:
    """
    Callable(locator, timeout) -> ProbeOutcome backed by requests sessions.

    - HEAD first; servers that refuse HEAD (405/501) get a streamed GET
    - Redirects are followed
    - 200 -> FOUND, 404/410 -> NOT_FOUND, anything else -> ERROR
    - An HTML body is a soft-404 (the storefront serves its error page with
      status 200 for missing images) -> NOT_FOUND

    Timeouts propagate as requests.Timeout so the prober can count them.
    Each thread gets its own session from session_factory and keeps it for
    connection reuse; close() closes all of them.
    """

    def __init__(self, session_factory: Callable[[], requests.Session] = requests.Session,
                 user_agent: Optional[str] = None):
        self.session_factory = session_factory
        self.user_agent = user_agent or get_user_agent()
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """This thread's session, created on first use."""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self.session_factory()
            session.headers['User-Agent'] = self.user_agent
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def _request(self, method: str, locator: str, timeout: float) -> requests.Response:
        if method == 'HEAD':
            return self.session.head(locator, timeout=timeout, allow_redirects=True)
        return self.session.get(locator, timeout=timeout, allow_redirects=True, stream=True)

    def __call__(self, locator: str, timeout: float) -> ProbeOutcome:
        resp = self._request('HEAD', locator, timeout)
        if resp.status_code in (405, 501):
            resp.close()
            resp = self._request('GET', locator, timeout)

        try:
            if resp.status_code in FOUND_STATUSES:
                content_type = resp.headers.get('Content-Type', '').lower()
                if 'text/html' in content_type:
                    logger.debug(f"Soft 404 (HTML body): {locator}")
                    return ProbeOutcome.NOT_FOUND
                return ProbeOutcome.FOUND
            if resp.status_code in MISSING_STATUSES:
                return ProbeOutcome.NOT_FOUND
            logger.debug(f"HTTP {resp.status_code}: {locator}")
            return ProbeOutcome.ERROR
        finally:
            resp.close()

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
