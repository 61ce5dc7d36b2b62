import json

from requests.structures import CaseInsensitiveDict

from retdec_client.models import JobHandle
from retdec_client.services.delivery import DefaultDecompilationResult

API = "https://retdec.test/service/api"
JOB_URL = f"{API}/decompiler/decompilations/job-1"
STATUS_URL = f"{JOB_URL}/status"
OUTPUTS_URL = f"{JOB_URL}/outputs"


def make_handle(job_id="job-1"):
    return JobHandle.from_id(job_id, API)


def phase(name, completion=0, warnings=(), part="decompiler", description=None):
    return {
        "part": part,
        "name": name,
        "description": description or name,
        "completion": completion,
        "warnings": list(warnings),
    }


def status_body(phases=(), finished=False, succeeded=False, failed=False, completion=0, cg=None, **extra):
    body = {
        "id": "job-1",
        "pending": False,
        "running": not finished,
        "finished": finished,
        "succeeded": succeeded,
        "failed": failed,
        "error": None,
        "completion": completion,
        "phases": list(phases),
    }
    if cg is not None:
        body["cg"] = cg
    body.update(extra)
    return body


class FakeResponse:
    def __init__(self, status_code=200, json_body=None, content=b"", headers=None, body_error=None):
        self.status_code = status_code
        if json_body is not None:
            content = json.dumps(json_body).encode("utf-8")
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})
        self.body_error = body_error
        self.closed = False

    @property
    def text(self):
        return self.content.decode("utf-8", "replace")

    def json(self):
        return json.loads(self.content)

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]
        if self.body_error is not None:
            raise self.body_error

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class FakeSession:
    """Canned responses per (method, url); the last response for a route repeats."""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.auth = None

    def add(self, method, url, *responses):
        self.routes.setdefault((method, url), []).extend(responses)

    def request(self, method, url, **kwargs):
        if "files" in kwargs:
            kwargs["files"] = {
                name: (file_name, fh.read(), content_type)
                for name, (file_name, fh, content_type) in kwargs["files"].items()
            }
        self.calls.append((method, url, kwargs))
        queue = self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"unexpected request {method} {url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def urls(self, method="GET"):
        return [url for m, url, _ in self.calls if m == method]


class RecordingResult(DefaultDecompilationResult):
    """Logs every callback as a tuple in ``events``."""

    def __init__(self, accept=lambda kind, name: True, fail_on_consume=None):
        super().__init__()
        self.events = []
        self.accept = accept
        self.fail_on_consume = fail_on_consume
        self.consumed = []

    def set_id(self, job_id):
        super().set_id(job_id)
        self.events.append(("set_id", job_id))

    def started(self):
        self.events.append(("started",))

    def set_status(self, status):
        super().set_status(status)
        self.events.append(("set_status", status.completion))

    def phase_change(self, phase):
        super().phase_change(phase)
        self.events.append(("phase_change", phase.name, phase.completion))

    def accept_output(self, kind, name=None):
        self.events.append(("accept_output", kind.value, name))
        return self.accept(kind, name)

    def consume_output(self, file_name, media_type, stream):
        self.events.append(("consume_output", file_name, media_type))
        if self.fail_on_consume is not None:
            raise self.fail_on_consume
        try:
            self.consumed.append((file_name, media_type, stream.read()))
        finally:
            stream.close()

    def finished(self):
        super().finished()
        self.events.append(("finished",))

    def failed(self, exc):
        super().failed(exc)
        self.events.append(("failed", type(exc).__name__))

    def names(self):
        return [event[0] for event in self.events]
