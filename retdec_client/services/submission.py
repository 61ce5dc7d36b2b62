from __future__ import annotations

import logging
import mimetypes
from contextlib import ExitStack
from enum import Enum
from pathlib import Path

from retdec_client.descriptors import JobDescriptor, wire_token
from retdec_client.errors import BindingError, RequestRejectedError
from retdec_client.models import ErrorResponse, JobHandle
from retdec_client.services.client import RetdecHttpClient

logger = logging.getLogger(__name__)

DECOMPILATIONS_PATH = "decompiler/decompilations"


def _file_content_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def encode_value(value: object) -> str:
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, Enum):
        return wire_token(value)
    if isinstance(value, int):
        return hex(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    if isinstance(value, str):
        return value
    raise ValueError(f"Cannot post value of type {type(value).__name__}")


def encode_form(descriptor: JobDescriptor) -> tuple[dict[str, str], dict[str, Path]]:
    """Split a descriptor into text form fields and file parts.

    Unset fields are left out entirely so the service applies its own default.
    """
    fields: dict[str, str] = {}
    files: dict[str, Path] = {}
    for name, value in descriptor.form_fields().items():
        if value is None:
            continue
        if isinstance(value, Path):
            files[name] = value
        else:
            fields[name] = encode_value(value)
    return fields, files


def submit(client: RetdecHttpClient, descriptor: JobDescriptor) -> JobHandle:
    fields, files = encode_form(descriptor)
    with ExitStack() as stack:
        parts = {
            name: (path.name, stack.enter_context(path.open("rb")), _file_content_type(path))
            for name, path in files.items()
        }
        resp = client.post_multipart(DECOMPILATIONS_PATH, data=fields, files=parts)

    status = resp.status_code
    if status in (400, 422):
        err = client.bind(resp, ErrorResponse)
        raise RequestRejectedError(status, err.message or err.description or "", err.code)
    if not 200 <= status < 300:
        raise BindingError("Unexpected response to job submission", status=status, body=resp.text)

    handle = client.bind(resp, JobHandle)
    missing = [name for name in ("decompilation", "status", "outputs") if name not in handle.links]
    if missing:
        raise BindingError(f"Job {handle.id} is missing links {missing}", status=status, body=resp.text)
    logger.info("Submitted %s decompilation of %s as job %s", descriptor.mode, descriptor.input, handle.id)
    return handle
