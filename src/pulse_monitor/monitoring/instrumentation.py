"""Per-request timing hook called by the HTTP layer."""

import time
from typing import Callable

from .models import RequestRecord
from .sample_store import SampleStore


class RequestInstrumentation:
    """
    Records one RequestRecord per completed request.

    The hook only appends; alert evaluation and notification happen on the
    evaluator's own cadence.
    """

    def __init__(self, store: SampleStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def record_request(self, elapsed_ms: float, has_error: bool = False) -> RequestRecord:
        record = RequestRecord(
            timestamp=self.clock(),
            response_time_ms=float(elapsed_ms),
            has_error=bool(has_error),
        )
        self.store.append_request_record(record)
        return record

    def record_response(self, elapsed_ms: float, status_code: int) -> RequestRecord:
        """Convenience wrapper: any status code >= 400 counts as an error."""
        return self.record_request(elapsed_ms, has_error=status_code >= 400)
