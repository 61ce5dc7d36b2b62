from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import requests

from retdec_client.config import Settings, settings as default_settings
from retdec_client.descriptors import JobDescriptor
from retdec_client.errors import JobCancelledError
from retdec_client.models import EchoResponse, JobHandle
from retdec_client.services.client import RetdecHttpClient
from retdec_client.services.delivery import DecompilationResult
from retdec_client.services.outputs import OutputFetcher
from retdec_client.services.poller import JobState, StatusPoller
from retdec_client.services.submission import submit

logger = logging.getLogger(__name__)

ECHO_PATH = "test/echo"


class DecompilationJob:
    """One job being driven to completion on its own background thread."""

    def __init__(self, service: "RetdecService", handle: JobHandle, result: DecompilationResult):
        self.service = service
        self.handle = handle
        self.result = result
        self.state = JobState.SUBMITTED
        self.exception: BaseException | None = None
        self._cancel = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"retdec-{handle.id}", daemon=True)

    def _set_state(self, state: JobState) -> None:
        self.state = state

    def _run(self) -> None:
        try:
            self.exception = self.service.drive(self.handle, self.result, self._cancel, self._set_state)
        except Exception as exc:
            # Raised by the result's own closing callback; nothing left to notify.
            logger.exception("Job %s: result callback failed while closing", self.handle.id)
            self.exception = exc
            self.state = JobState.FAILED

    def start(self) -> "DecompilationJob":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancel.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the result has been closed; False if ``timeout`` ran out first."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def done(self) -> bool:
        return self._thread.ident is not None and not self._thread.is_alive()


class RetdecService:
    def __init__(self, config: Settings | None = None, session: requests.Session | None = None):
        self.settings = config or default_settings
        self.client = RetdecHttpClient(
            self.settings.api_url,
            self.settings.api_key,
            self.settings.request_timeout_s,
            session=session,
        )
        self.poller = StatusPoller(self.client, self.settings.poll_interval_s)
        self.fetcher = OutputFetcher(self.client)

    def decompile(self, descriptor: JobDescriptor) -> JobHandle:
        return submit(self.client, descriptor)

    def handle_for_id(self, job_id: str) -> JobHandle:
        return JobHandle.from_id(job_id, self.settings.api_url)

    def echo(self, params: dict[str, str]) -> dict[str, Any]:
        """Round-trip ``params`` through the service; a cheap credentials check."""
        return self.client.get_json(ECHO_PATH, EchoResponse, params=params).root

    def drive(
        self,
        handle: JobHandle,
        result: DecompilationResult,
        cancel: threading.Event,
        on_state: Callable[[JobState], None] | None = None,
    ) -> BaseException | None:
        """Run poll and fetch for ``handle`` and close ``result`` exactly once.

        Returns the exception that ended the job in ``result.failed``, or None
        when it ended in ``result.finished``.
        """

        def set_state(state: JobState) -> None:
            if on_state is not None:
                on_state(state)

        try:
            result.set_id(handle.id)
            set_state(JobState.POLLING)
            status = self.poller.poll(handle, result, cancel)
            self.fetcher.fetch(handle, status, result, cancel)
        except Exception as exc:
            set_state(JobState.CANCELLED if isinstance(exc, JobCancelledError) else JobState.FAILED)
            logger.error("Job %s failed: %s", handle.id, exc)
            result.failed(exc)
            return exc

        set_state(JobState.FAILED if status.failed else JobState.SUCCEEDED)
        result.finished()
        return None

    def run_sync(
        self,
        handle: JobHandle,
        result: DecompilationResult,
        cancel: threading.Event | None = None,
        raise_on_failure: bool = False,
    ) -> None:
        """Drive the job on the calling thread.

        Failures always reach ``result.failed``; with ``raise_on_failure`` the
        same exception is raised afterwards as well.
        """
        exc = self.drive(handle, result, cancel if cancel is not None else threading.Event())
        if exc is not None and raise_on_failure:
            raise exc

    def run_async(self, handle: JobHandle, result: DecompilationResult) -> DecompilationJob:
        return DecompilationJob(self, handle, result).start()
