from __future__ import annotations

import logging
import threading
from enum import Enum

from retdec_client.errors import JobCancelledError
from retdec_client.models import JobHandle, Phase, StatusSnapshot
from retdec_client.services.client import RetdecHttpClient
from retdec_client.services.delivery import DecompilationResult

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


def ensure_not_cancelled(cancel: threading.Event, handle: JobHandle) -> None:
    if cancel.is_set():
        raise JobCancelledError(f"Job {handle.id} was cancelled")


class StatusPoller:
    def __init__(self, client: RetdecHttpClient, interval_s: float):
        self.client = client
        self.interval_s = interval_s

    @staticmethod
    def _check_progress(handle: JobHandle, previous: StatusSnapshot | None, current: StatusSnapshot) -> None:
        if previous is None:
            return
        if current.completion < previous.completion:
            logger.warning(
                "Job %s completion went back from %d%% to %d%%",
                handle.id,
                previous.completion,
                current.completion,
            )
        if len(current.phases) < len(previous.phases):
            logger.warning(
                "Job %s reported %d phases after %d",
                handle.id,
                len(current.phases),
                len(previous.phases),
            )

    def poll(
        self,
        handle: JobHandle,
        result: DecompilationResult,
        cancel: threading.Event | None = None,
    ) -> StatusSnapshot:
        """Poll the status link until the service reports the job finished.

        Returns the terminal snapshot. Each distinct phase (compared on all of
        its fields) is passed to ``result.phase_change`` once, in the order it
        was first seen. Errors are not retried.
        """
        cancel = cancel if cancel is not None else threading.Event()
        result.started()

        reported: set[Phase] = set()
        previous: StatusSnapshot | None = None
        while True:
            ensure_not_cancelled(cancel, handle)
            status = self.client.get_json(handle.status_url, StatusSnapshot)
            logger.debug("Job %s at %d%% with %d phases", handle.id, status.completion, len(status.phases))
            self._check_progress(handle, previous, status)

            result.set_status(status)
            for phase in status.phases:
                if phase not in reported:
                    reported.add(phase)
                    result.phase_change(phase)

            if status.finished:
                outcome = "failed" if status.failed else "succeeded"
                logger.info("Job %s finished (%s)", handle.id, outcome)
                return status

            previous = status
            if cancel.wait(self.interval_s):
                raise JobCancelledError(f"Job {handle.id} was cancelled while waiting for status")
