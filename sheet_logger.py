"""
Best-effort audit log of generated questions to a spreadsheet webhook
(for example a Google Apps Script web app that appends one row per POST).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)


class SheetLogger:
    def __init__(self, url=None, timeout=10.0, executor=None):
        self.url = (url or "").strip() or None
        self.timeout = timeout
        self._executor = executor

    @property
    def enabled(self):
        return self.url is not None

    def _pool(self):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sheet-logger")
        return self._executor

    def payload(self, question):
        row = question.to_dict()
        row["generated_at"] = datetime.now(timezone.utc).isoformat()
        return row

    def post(self, row):
        """Send one row. Never raises; returns True on a 2xx reply."""
        try:
            r = requests.post(self.url, json=row, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Error saving question to sheet: %s", e)
            return False
        if not r.ok:
            logger.warning("Failed to save question. Status: %s", r.status_code)
            return False
        return True

    def save(self, question):
        """Queue ``question`` for logging and return immediately."""
        if not self.enabled:
            logger.debug("Sheet logging disabled; skipping question for %s", question.subject)
            return None
        return self._pool().submit(self.post, self.payload(question))
