"""
Multipart field/file splitter.

The request body is treated as a producer of parts (``iter_request_parts``)
and a consumer (``split_parts``) drains it, sorting scalar fields from file
streams, enforcing the total size cap with a running counter checked per
chunk, and reporting required fields that never arrived.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Iterable, Optional, Union

import structlog
from fastapi import Request
from starlette.datastructures import UploadFile
from starlette.types import Message, Receive

from catalog.errors import InvalidFileError, UploadTooLargeError, ValidationError
from catalog.storage import CHUNK_SIZE, read_chunk

logger = structlog.get_logger(__name__)


@dataclass
class FieldPart:
    """A scalar form field."""
    name: str
    value: str


@dataclass
class FilePart:
    """A file form field. ``stream`` must expose ``read`` (sync or async)."""
    name: str
    filename: Optional[str]
    stream: Any


Part = Union[FieldPart, FilePart]


@dataclass
class SplitBody:
    """Result of draining a multipart body."""
    fields: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, FilePart] = field(default_factory=dict)
    total_bytes: int = 0


def capped_receive(receive: Receive, max_bytes: int) -> Receive:
    """
    Wrap an ASGI receive channel with a running count of body bytes.

    Raises:
        UploadTooLargeError: As soon as the received body passes ``max_bytes``
    """
    received = 0

    async def wrapped() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                logger.warning("Upload size cap exceeded while reading body", max_bytes=max_bytes)
                raise UploadTooLargeError()
        return message

    return wrapped


async def iter_request_parts(request: Request, max_bytes: Optional[int] = None) -> AsyncIterator[Part]:
    """
    Yield the parts of a multipart request in body order.

    A declared Content-Length above ``max_bytes`` is rejected before the body
    is read.
    """
    content_length = request.headers.get("content-length")
    if max_bytes is not None and content_length and content_length.isdigit():
        if int(content_length) > max_bytes:
            logger.warning("Rejected oversized body", content_length=int(content_length), max_bytes=max_bytes)
            raise UploadTooLargeError()

    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        # No form body at all; behaves like an empty sequence of parts
        return

    if max_bytes is not None:
        # Bodies without a usable Content-Length are counted while the parser reads them
        request = Request(request.scope, receive=capped_receive(request.receive, max_bytes))

    form = await request.form()
    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            if not value.filename and not value.size:
                # Browsers send an empty part for an untouched file input
                continue
            yield FilePart(name=name, filename=value.filename, stream=value)
        else:
            yield FieldPart(name=name, value=value)


def _is_readable(stream: Any) -> bool:
    return stream is not None and callable(getattr(stream, "read", None))


async def _rewind(stream: Any) -> None:
    seek = getattr(stream, "seek", None)
    if seek is None:
        return
    result = seek(0)
    if inspect.isawaitable(result):
        await result


async def split_parts(
    parts: Union[AsyncIterator[Part], Iterable[Part]],
    required_fields: Iterable[str] = (),
    required_files: Iterable[str] = (),
    max_bytes: Optional[int] = None
) -> SplitBody:
    """
    Drain a sequence of parts into named fields and files.

    Args:
        parts: Async or plain iterable of FieldPart / FilePart
        required_fields: Field names that must be present and non-empty
        required_files: File field names that must be present
        max_bytes: Cap on the total size of all field values and file bytes

    Returns:
        SplitBody with ``fields`` (last value wins) and ``files``

    Raises:
        UploadTooLargeError: The running total passed ``max_bytes``
        InvalidFileError: A file part has no readable stream
        ValidationError: Required fields or files are missing, listed together
    """
    body = SplitBody()

    def count(size: int) -> None:
        body.total_bytes += size
        if max_bytes is not None and body.total_bytes > max_bytes:
            logger.warning("Upload size cap exceeded", max_bytes=max_bytes)
            raise UploadTooLargeError()

    async def consume(part: Part) -> None:
        if isinstance(part, FilePart):
            if not _is_readable(part.stream):
                logger.error("Invalid file stream", field=part.name, filename=part.filename)
                raise InvalidFileError()
            while True:
                chunk = await read_chunk(part.stream, CHUNK_SIZE)
                if not chunk:
                    break
                count(len(chunk))
            await _rewind(part.stream)
            body.files[part.name] = part
        else:
            count(len(part.value.encode("utf-8")))
            body.fields[part.name] = part.value

    if hasattr(parts, "__aiter__"):
        async for part in parts:
            await consume(part)
    else:
        for part in parts:
            await consume(part)

    missing = [name for name in required_fields if not body.fields.get(name)]
    missing += [name for name in required_files if name not in body.files]
    if missing:
        raise ValidationError(missing=missing)

    logger.debug(
        "Split multipart body",
        fields=sorted(body.fields),
        files=sorted(body.files),
        total_bytes=body.total_bytes
    )
    return body
