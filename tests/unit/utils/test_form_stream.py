from typing import List

import pytest

from src.api.utils.form_stream import MultipartFileStream, MultipartStreamError

BOUNDARY = "----marketplace-boundary"
CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


def file_part(field: str, filename: str, data: bytes) -> bytes:
    return (
        f"--{BOUNDARY}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        f"Content-Type: application/octet-stream\r\n\r\n"
    ).encode() + data + b"\r\n"


def text_part(field: str, value: bytes) -> bytes:
    return (
        f"--{BOUNDARY}\r\n"
        f'Content-Disposition: form-data; name="{field}"\r\n\r\n'
    ).encode() + value + b"\r\n"


def closing() -> bytes:
    return f"--{BOUNDARY}--\r\n".encode()


class ChunkedBody:
    """Async body source that records how much of itself was pulled"""

    def __init__(self, body: bytes, chunk_size: int):
        self.chunks: List[bytes] = [
            body[i:i + chunk_size] for i in range(0, len(body), chunk_size)
        ]
        self.pulled = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            self.pulled += 1
            yield chunk


async def read_all(stream: MultipartFileStream) -> bytes:
    data = b""
    while True:
        chunk = await stream.read(64)
        if not chunk:
            return data
        data += chunk


@pytest.mark.asyncio
async def test_reads_file_split_across_small_chunks():
    body = ChunkedBody(file_part("avatar", "me.png", PNG_BYTES) + closing(), chunk_size=7)
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar")

    assert await stream.open() == "me.png"
    assert await read_all(stream) == PNG_BYTES


@pytest.mark.asyncio
async def test_filename_known_before_file_content_is_pulled():
    head = file_part("avatar", "evil.exe", b"")[:-2]
    body = ChunkedBody(head + b"\x00" * 4096 * 50 + b"\r\n" + closing(), chunk_size=4096)
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar")

    assert await stream.open() == "evil.exe"
    assert body.pulled == 1


@pytest.mark.asyncio
async def test_other_fields_before_the_file_are_skipped():
    body = ChunkedBody(
        text_part("note", b"hello") + file_part("avatar", "me.png", PNG_BYTES) + closing(),
        chunk_size=32,
    )
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar")

    assert await stream.open() == "me.png"
    assert await read_all(stream) == PNG_BYTES


@pytest.mark.asyncio
async def test_missing_field_returns_none():
    body = ChunkedBody(file_part("picture", "me.png", PNG_BYTES) + closing(), chunk_size=64)
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar")

    assert await stream.open() is None
    assert await stream.read(64) == b""


@pytest.mark.asyncio
async def test_field_without_filename_is_not_a_file():
    body = ChunkedBody(text_part("avatar", b"not a file") + closing(), chunk_size=64)
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar")

    assert await stream.open() is None


@pytest.mark.asyncio
async def test_large_preamble_is_rejected():
    body = ChunkedBody(
        text_part("note", b"x" * 40 * 1024) + file_part("avatar", "me.png", PNG_BYTES) + closing(),
        chunk_size=8 * 1024,
    )
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar", max_preamble_bytes=16 * 1024)

    with pytest.raises(MultipartStreamError):
        await stream.open()
    assert body.pulled < len(body.chunks)


@pytest.mark.asyncio
async def test_body_ending_inside_file_part_is_an_error():
    body = ChunkedBody(file_part("avatar", "me.png", PNG_BYTES)[:-2], chunk_size=64)
    stream = MultipartFileStream(body, CONTENT_TYPE, "avatar")

    assert await stream.open() == "me.png"
    with pytest.raises(MultipartStreamError):
        await read_all(stream)


def test_content_type_without_boundary_is_rejected():
    with pytest.raises(MultipartStreamError):
        MultipartFileStream(ChunkedBody(b"", 1), "multipart/form-data", "avatar")
