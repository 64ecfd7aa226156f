"""
Streamed multipart/form-data reading

The request body is fed to python-multipart's push parser one network chunk
at a time, and only as far as the consumer reads. A rejected upload leaves
the rest of the body unread instead of spooling it to disk first.
"""

from typing import AsyncIterator, Dict, Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header


class MultipartStreamError(ValueError):
    pass


class MultipartFileStream:
    """
    One file field of a multipart body, readable like a file.

    ``open()`` advances to the field's part headers and returns its filename
    before any of its content is handed out; ``read()`` then yields the part
    body. Other parts are skipped without buffering.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        content_type: str,
        field_name: str,
        max_preamble_bytes: int = 16 * 1024,
    ):
        _, params = parse_options_header(content_type)
        boundary = params.get(b"boundary")
        if not boundary:
            raise MultipartStreamError("Missing multipart boundary")

        self.field_name = field_name
        self.filename: Optional[str] = None
        self._chunks = chunks.__aiter__()
        self._max_preamble_bytes = max_preamble_bytes
        self._consumed = 0
        self._exhausted = False

        self._header_field = b""
        self._header_value = b""
        self._headers: Dict[bytes, bytes] = {}
        self._in_field = False
        self._found = False
        self._finished = False
        self._buffer = bytearray()

        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
            },
        )

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        if self._found:
            return
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        name = options.get(b"name", b"").decode("utf-8", errors="replace")
        if name == self.field_name and b"filename" in options:
            self.filename = options[b"filename"].decode("utf-8", errors="replace")
            self._in_field = True
            self._found = True

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._in_field:
            self._buffer += data[start:end]

    def _on_part_end(self) -> None:
        if self._in_field:
            self._in_field = False
            self._finished = True

    async def _pull(self) -> None:
        try:
            chunk = await self._chunks.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            self._parser.finalize()
            return

        self._consumed += len(chunk)
        try:
            self._parser.write(chunk)
        except MultipartParseError as exc:
            raise MultipartStreamError("Malformed multipart body") from exc

    async def open(self) -> Optional[str]:
        """Filename of the field, or None when the body has no such file part"""
        while not self._found:
            if self._exhausted:
                return None
            if self._consumed > self._max_preamble_bytes:
                raise MultipartStreamError(
                    f"Field '{self.field_name}' must come first in the form"
                )
            await self._pull()
        return self.filename

    async def read(self, size: int = -1) -> bytes:
        while not self._buffer and self._found and not self._finished:
            if self._exhausted:
                raise MultipartStreamError("Body ended inside the file part")
            await self._pull()

        if size < 0 or size >= len(self._buffer):
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data
