from __future__ import annotations

import io
import logging
import threading
from email.message import Message

import requests

from retdec_client.errors import BindingError, TransportError
from retdec_client.models import JobHandle, OutputKind, OutputsResponse, StatusSnapshot
from retdec_client.services.client import RetdecHttpClient
from retdec_client.services.delivery import DecompilationResult
from retdec_client.services.poller import ensure_not_cancelled

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"
CHUNK_SIZE = 64 * 1024


def suggested_filename(content_disposition: str | None) -> str | None:
    """Filename from a Content-Disposition header, or None when there is none to be had."""
    if not content_disposition:
        return None
    msg = Message()
    msg["content-disposition"] = content_disposition
    try:
        name = msg.get_filename()
    except (ValueError, LookupError):
        return None
    return name or None


class ResponseStream(io.RawIOBase):
    """Readable view of a streamed response body.

    Content-Encoding is undone on the way through, and a connection that breaks
    mid-body surfaces as TransportError like any other request failure.
    """

    def __init__(self, resp: requests.Response, url: str):
        self._resp = resp
        self._url = url
        self._chunks = resp.iter_content(CHUNK_SIZE)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except requests.RequestException as exc:
                raise TransportError(f"Reading {self._url} failed: {exc}") from exc
        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def close(self) -> None:
        if not self.closed:
            self._resp.close()
        super().close()


def _output_kind(key: str) -> OutputKind:
    try:
        return OutputKind(key)
    except ValueError:
        raise BindingError(f"Unknown output kind '{key}'") from None


class OutputFetcher:
    def __init__(self, client: RetdecHttpClient):
        self.client = client

    def _deliver(
        self,
        handle: JobHandle,
        link: str,
        result: DecompilationResult,
        cancel: threading.Event,
    ) -> None:
        ensure_not_cancelled(cancel, handle)
        with self.client.open_stream(link) as resp:
            file_name = suggested_filename(resp.headers.get("Content-Disposition"))
            media_type = resp.headers.get("Content-Type") or DEFAULT_MEDIA_TYPE
            logger.info("Job %s: fetching %s (%s)", handle.id, file_name or link, media_type)
            result.consume_output(file_name, media_type, ResponseStream(resp, link))

    def fetch(
        self,
        handle: JobHandle,
        status: StatusSnapshot,
        result: DecompilationResult,
        cancel: threading.Event | None = None,
    ) -> None:
        """Offer every advertised output to ``result`` and stream the accepted ones."""
        cancel = cancel if cancel is not None else threading.Event()
        if status.failed:
            logger.warning("Job %s failed on the service (%s); fetching outputs anyway", handle.id, status.error)

        ensure_not_cancelled(cancel, handle)
        outputs = self.client.get_json(handle.outputs_url, OutputsResponse)

        for key, value in outputs.links.items():
            kind = _output_kind(key)
            if isinstance(value, str):
                # The call graph link is advertised even when none was generated.
                if kind is OutputKind.CG and status.cg is None:
                    logger.debug("Job %s: skipping call graph, none was generated", handle.id)
                    continue
                if result.accept_output(kind):
                    self._deliver(handle, value, result, cancel)
            else:
                for name, link in value.items():
                    if result.accept_output(kind, name):
                        self._deliver(handle, link, result, cancel)
