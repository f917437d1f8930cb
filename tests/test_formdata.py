import asyncio

import pytest

from cleancity.core.errors import ValidationError
from cleancity.core.formdata import FormStream, is_multipart

CONTENT_TYPE = "multipart/form-data; boundary=xyz"

BODY = (
    b"--xyz\r\n"
    b'Content-Disposition: form-data; name="caption"\r\n\r\n'
    b"broken bench\r\n"
    b"--xyz\r\n"
    b'Content-Disposition: form-data; name="image"; filename="bench.jpg"\r\n'
    b"Content-Type: image/jpeg\r\n\r\n"
    b"\xff\xd8\xff\xe0JPEGDATA\r\n"
    b"--xyz--\r\n"
)


async def _chunked(data, size):
    for start in range(0, len(data), size):
        yield data[start:start + size]


def _read(body, field="image", size=7):
    async def run():
        form = FormStream(CONTENT_TYPE, _chunked(body, size))
        part = await form.next_file(field)
        if part is None:
            return None, None
        return part, b"".join([chunk async for chunk in form.iter_part()])

    return asyncio.run(run())


def test_is_multipart():
    assert is_multipart(CONTENT_TYPE)
    assert is_multipart("Multipart/Form-Data; boundary=abc")
    assert not is_multipart("application/json")
    assert not is_multipart(None)


@pytest.mark.parametrize("size", [1, 7, 4096])
def test_file_part_survives_any_chunking(size):
    part, data = _read(BODY, size=size)

    assert part.field_name == "image"
    assert part.filename == "bench.jpg"
    assert part.content_type == "image/jpeg"
    assert data == b"\xff\xd8\xff\xe0JPEGDATA"


def test_missing_field_returns_none():
    assert _read(BODY, field="photo") == (None, None)


def test_truncated_body_is_rejected():
    with pytest.raises(ValidationError):
        _read(BODY[:-12])


def test_missing_boundary_is_rejected():
    with pytest.raises(ValidationError):
        FormStream("multipart/form-data", _chunked(BODY, 10))
