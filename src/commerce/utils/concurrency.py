"""Optimistic concurrency helpers.

Aggregates carry a version that Protean checks on save: if another request
saved the same aggregate after we loaded it, the save fails with
``ExpectedVersionError`` and the Unit of Work rolls back. Stock mutations are
retried from scratch in that case, re-reading fresh counters, so the net
effect per product is always equivalent to some serial order of requests.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from commerce import settings

logger = structlog.get_logger(__name__)


class ConcurrencyConflict(Exception):
    """Raised when a command keeps losing version races after all retries."""

    def __init__(self, command_name, attempts):
        self.command_name = command_name
        self.attempts = attempts
        super().__init__(f"{command_name} failed after {attempts} attempts due to concurrent modification")


def process_with_retry(command, max_attempts=None):
    """Process a command synchronously, retrying on version conflicts."""
    attempts = max_attempts or settings.stock_conflict_retries()
    command_name = command.__class__.__name__

    for attempt in range(1, attempts + 1):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError as exc:
            logger.warning(
                "Concurrent modification detected, retrying",
                command=command_name,
                attempt=attempt,
                error=str(exc),
            )

    raise ConcurrencyConflict(command_name, attempts)
