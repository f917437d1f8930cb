"""
Incremental multipart/form-data reading.

``request.form()`` spools the whole body before a handler runs. ``FormStream``
feeds ``request.stream()`` into python-multipart's parser one network chunk
at a time, so a file part is consumed while it is still arriving and size
and time limits apply to the live connection.
"""
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterator, Deque, Dict, Optional, Tuple

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from .errors import ValidationError

_HEADERS = "headers"
_DATA = "data"
_END = "end"


@dataclass
class FilePart:
    field_name: str
    filename: str
    content_type: str


def is_multipart(content_type: Optional[str]) -> bool:
    media_type, _ = parse_options_header(content_type or "")
    return media_type.strip().lower() == b"multipart/form-data"


class FormStream:
    """Pull-based view over a multipart body arriving as an async byte stream"""

    def __init__(self, content_type: str, chunks: AsyncIterator[bytes]):
        _, params = parse_options_header(content_type)
        boundary = params.get(b"boundary")
        if not boundary:
            raise ValidationError("Malformed multipart body")

        self._chunks = chunks.__aiter__()
        self._events: Deque[Tuple[str, object]] = deque()
        self._headers: Dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._exhausted = False
        self._parser = MultipartParser(boundary, {
            "on_part_begin": self._on_part_begin,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
        })

    # Parser callbacks; header names and values may arrive split across chunks

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.strip().lower()] = self._header_value.strip()
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append((_HEADERS, self._headers))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._events.append((_DATA, data[start:end]))

    def _on_part_end(self) -> None:
        self._events.append((_END, None))

    async def _next_event(self) -> Optional[Tuple[str, object]]:
        while not self._events:
            if self._exhausted:
                return None
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                self._feed(None)
                continue
            if chunk:
                self._feed(chunk)
        return self._events.popleft()

    def _feed(self, chunk: Optional[bytes]) -> None:
        try:
            if chunk is None:
                self._parser.finalize()
            else:
                self._parser.write(chunk)
        except MultipartParseError:
            raise ValidationError("Malformed multipart body")

    async def next_file(self, field_name: str) -> Optional[FilePart]:
        """Skip ahead to the file part named ``field_name``; None if the body has none"""
        while True:
            event = await self._next_event()
            if event is None:
                return None
            kind, headers = event
            if kind != _HEADERS:
                continue

            _, options = parse_options_header(headers.get(b"content-disposition", b""))
            filename = options.get(b"filename")
            if options.get(b"name", b"").decode("latin-1") == field_name and filename is not None:
                return FilePart(
                    field_name=field_name,
                    filename=filename.decode("utf-8", "replace"),
                    content_type=headers.get(b"content-type", b"").decode("latin-1"),
                )

    async def iter_part(self) -> AsyncIterator[bytes]:
        """Yield the current part's bytes as they come off the wire"""
        while True:
            event = await self._next_event()
            if event is None:
                # Body ended mid-part
                raise ValidationError("Malformed multipart body")
            kind, data = event
            if kind == _END:
                return
            if kind == _DATA and data:
                yield data
