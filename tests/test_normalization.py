from __future__ import annotations

import asyncio
import base64
import io

import pytest

from relay.core.errors import EmptyPayload, UnrecognizedOutputShape
from relay.core.normalization import (
    classify_output,
    describe_shape,
    encode_base64,
    normalize_image_output,
    normalize_text_output,
)
from relay.core.types import OutputShape

IMAGE_BYTES = bytes([0, 1, 2, 253, 254, 255])
IMAGE_BASE64 = "AAEC/f7/"


class ChunkStream:
    """Async byte stream yielding the payload in small pieces."""

    def __init__(self, payload: bytes, size: int = 2):
        self._chunks = [payload[i : i + size] for i in range(0, len(payload), size)]

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk


class AsyncReader:
    def __init__(self, payload: bytes):
        self._payload = payload

    async def aread(self) -> bytes:
        return self._payload


def normalize(raw) -> str:
    return asyncio.run(normalize_image_output(raw))


@pytest.mark.parametrize(
    "raw",
    [
        {"image_base64": IMAGE_BASE64},
        IMAGE_BYTES,
        bytearray(IMAGE_BYTES),
        memoryview(IMAGE_BYTES),
        list(IMAGE_BYTES),
        tuple(IMAGE_BYTES),
        io.BytesIO(IMAGE_BYTES),
        AsyncReader(IMAGE_BYTES),
        ChunkStream(IMAGE_BYTES),
        iter([IMAGE_BYTES[:3], IMAGE_BYTES[3:]]),
        {"data": IMAGE_BYTES},
        {"data": list(IMAGE_BYTES)},
        {"image": io.BytesIO(IMAGE_BYTES)},
        {"image": ChunkStream(IMAGE_BYTES)},
        {"image": IMAGE_BASE64},
    ],
)
def test_every_shape_yields_identical_base64(raw):
    assert normalize(raw) == IMAGE_BASE64


@pytest.mark.parametrize(
    "raw, shape",
    [
        ({"image_base64": IMAGE_BASE64}, OutputShape.NAMED_BASE64),
        ({"image": IMAGE_BASE64}, OutputShape.NAMED_BASE64),
        (IMAGE_BYTES, OutputShape.RAW_BYTES),
        ([0, 1, 2], OutputShape.RAW_BYTES),
        (io.BytesIO(IMAGE_BYTES), OutputShape.BYTE_STREAM),
        (ChunkStream(IMAGE_BYTES), OutputShape.BYTE_STREAM),
        ({"data": IMAGE_BYTES}, OutputShape.NESTED),
        ({"image": IMAGE_BYTES}, OutputShape.NESTED),
        ({"response": "text"}, OutputShape.UNRECOGNIZED),
        (None, OutputShape.UNRECOGNIZED),
        (42, OutputShape.UNRECOGNIZED),
    ],
)
def test_classify_output(raw, shape):
    assert classify_output(raw) is shape


def test_named_field_is_checked_before_nested_bytes():
    raw = {"image_base64": IMAGE_BASE64, "data": b"other bytes"}

    assert classify_output(raw) is OutputShape.NAMED_BASE64
    assert normalize(raw) == IMAGE_BASE64


def test_named_field_reads_object_attributes():
    class Output:
        image_base64 = IMAGE_BASE64

    assert normalize(Output()) == IMAGE_BASE64


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        [],
        io.BytesIO(b""),
        ChunkStream(b""),
        {"data": b""},
        {"image_base64": ""},
        {"image": ""},
    ],
)
def test_empty_payload_is_an_error(raw):
    with pytest.raises(EmptyPayload):
        normalize(raw)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        42,
        "AAEC/f7/",
        {"pixels": [1, 2, 3]},
        {"data": {"deeper": b"bytes"}},
        {"image": "not base64 at all!"},
        [0, 1, 256],
        [1.5, 2.5],
        iter(["text", "chunks"]),
    ],
)
def test_unrecognized_shapes_raise(raw):
    with pytest.raises(UnrecognizedOutputShape) as exc_info:
        normalize(raw)

    assert exc_info.value.details


def test_unrecognized_details_describe_structure_only():
    with pytest.raises(UnrecognizedOutputShape) as exc_info:
        normalize({"pixels": "do-not-log-me"})

    assert exc_info.value.details == "dict with keys ['pixels']"
    assert "do-not-log-me" not in exc_info.value.details


def test_describe_shape_truncates_long_key_lists():
    raw = {f"key{i}": i for i in range(30)}

    description = describe_shape(raw)

    assert "key0" in description
    assert "key29" not in description
    assert description.endswith("...]")


@pytest.mark.parametrize(
    "payload",
    [IMAGE_BYTES, b"\x00", bytes(range(256)), b"\x89PNG\r\n\x1a\n" * 64],
)
def test_base64_round_trip(payload):
    encoded = encode_base64(payload)

    assert "\n" not in encoded
    assert base64.b64decode(encoded, validate=True) == payload


def test_encode_base64_rejects_empty_bytes():
    with pytest.raises(EmptyPayload):
        encode_base64(b"")


def test_text_output_returns_response_string():
    assert normalize_text_output({"response": "Hello"}) == "Hello"


@pytest.mark.parametrize(
    "raw",
    [{}, {"response": 5}, {"result": {"response": "nested"}}, b"bytes", None],
)
def test_text_output_requires_string_field(raw):
    with pytest.raises(UnrecognizedOutputShape):
        normalize_text_output(raw)


def test_blank_text_output_is_empty_payload():
    with pytest.raises(EmptyPayload):
        normalize_text_output({"response": "   "})
