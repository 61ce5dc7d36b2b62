from __future__ import annotations

from typing import BinaryIO, Protocol, runtime_checkable

from retdec_client.models import OutputKind, Phase, StatusSnapshot

_DRAIN_CHUNK = 64 * 1024


@runtime_checkable
class DecompilationResult(Protocol):
    """
    Callbacks through which a running job reports to its caller.

    Calls arrive in three stages, all from one thread per job:

      1. init:    set_id, then started
      2. working: set_status once per poll, phase_change once per newly seen
                  phase, and accept_output / consume_output pairs (consume only
                  after accept returned True)
      3. closing: exactly one of finished or failed, nothing afterwards

    An exception raised from any callback aborts the job and ends in failed().
    """

    def set_id(self, job_id: str) -> None: ...

    def started(self) -> None: ...

    def set_status(self, status: StatusSnapshot) -> None: ...

    def phase_change(self, phase: Phase) -> None: ...

    def accept_output(self, kind: OutputKind, name: str | None = None) -> bool: ...

    def consume_output(self, file_name: str | None, media_type: str, stream: BinaryIO) -> None: ...

    def finished(self) -> None: ...

    def failed(self, exc: BaseException) -> None: ...


class DefaultDecompilationResult:
    """Bookkeeping base for result consumers.

    Remembers what the job reported; fetches no outputs unless ``accept_output``
    is overridden.
    """

    def __init__(self) -> None:
        self.id: str | None = None
        self.status: StatusSnapshot | None = None
        self.phases: list[Phase] = []
        self.exception: BaseException | None = None
        self.closed = False

    def set_id(self, job_id: str) -> None:
        self.id = job_id

    def started(self) -> None:
        pass

    def set_status(self, status: StatusSnapshot) -> None:
        self.status = status

    def phase_change(self, phase: Phase) -> None:
        self.phases.append(phase)

    def accept_output(self, kind: OutputKind, name: str | None = None) -> bool:
        return False

    def consume_output(self, file_name: str | None, media_type: str, stream: BinaryIO) -> None:
        try:
            while stream.read(_DRAIN_CHUNK):
                pass
        finally:
            stream.close()

    def finished(self) -> None:
        self.closed = True

    def failed(self, exc: BaseException) -> None:
        self.exception = exc
        self.closed = True

    @property
    def succeeded(self) -> bool:
        return self.closed and self.exception is None
