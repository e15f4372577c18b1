# deadline.py
# Бюджет времени на запрос чтения

import time

from exceptions import QueryTimeout
from logger import get_logger

log = get_logger('deadline')


class Deadline:
    """Caller-imposed time budget for a read query.

    `check()` raises QueryTimeout once the budget is spent, so a computation
    either finishes completely or fails without a partial result.
    """

    def __init__(self, seconds=None, operation='query'):
        self.seconds = seconds
        self.operation = operation
        self._expires = time.monotonic() + seconds if seconds is not None else None

    @classmethod
    def none(cls):
        return cls(None)

    @property
    def remaining(self):
        if self._expires is None:
            return None
        return max(0.0, self._expires - time.monotonic())

    def expired(self):
        return self._expires is not None and time.monotonic() >= self._expires

    def check(self):
        if self.expired():
            log.warning("%s exceeded its %.2fs deadline", self.operation, self.seconds)
            raise QueryTimeout(f"{self.operation} exceeded {self.seconds}s")


def ensure(deadline, operation='query'):
    if deadline is None:
        return Deadline(None, operation)
    return deadline
