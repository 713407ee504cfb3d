"""Normalization of raw generation-service output.

The upstream service returns loosely typed values whose shape drifts
between models and releases. Image output is classified into one of the
``OutputShape`` tags and turned into a base64 string by a single ordered
dispatch table:

    1. NAMED_BASE64  ``{"image_base64": str}`` or ``{"image": str}``
    2. RAW_BYTES     bytes, bytearray, memoryview, or a list/tuple of ints
    3. BYTE_STREAM   file-like ``read``/``aread`` or an iterator of chunks
    4. NESTED        ``{"data": ...}`` / ``{"image": ...}`` holding 2 or 3
    5. UNRECOGNIZED  anything else

Text output must expose a string ``response`` field.
"""

from __future__ import annotations

import base64
import binascii
import inspect
from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Any, Awaitable, Callable

from .errors import EmptyPayload, UnrecognizedOutputShape
from .types import IMAGE_BASE64_FIELD, NESTED_BYTE_FIELDS, TEXT_FIELD, OutputShape

_READ_ACCESSORS = ("aread", "read")
_MAX_DESCRIBED_NAMES = 20


def encode_base64(payload: bytes) -> str:
    if not payload:
        raise EmptyPayload("Generation service returned an empty image.")
    return base64.b64encode(payload).decode("ascii")


def describe_shape(value: Any) -> str:
    type_name = type(value).__name__

    if isinstance(value, Mapping):
        names = [str(key) for key in value.keys()]
        return f"{type_name} with keys {_format_names(names)}"

    if isinstance(value, (bytes, bytearray, memoryview, str)):
        return f"{type_name} of length {len(value)}"

    if isinstance(value, (list, tuple)):
        item_types = sorted({type(item).__name__ for item in value})
        return f"{type_name} of length {len(value)} with item types {item_types}"

    names = [name for name in dir(value) if not name.startswith("_")]
    return f"{type_name} with attributes {_format_names(names)}"


def classify_output(raw: Any) -> OutputShape:
    if _named_base64(raw) is not None:
        return OutputShape.NAMED_BASE64
    if _is_byte_sequence(raw):
        return OutputShape.RAW_BYTES
    if _is_byte_stream(raw):
        return OutputShape.BYTE_STREAM
    if _nested_value(raw) is not None:
        return OutputShape.NESTED
    return OutputShape.UNRECOGNIZED


async def normalize_image_output(raw: Any) -> str:
    shape = classify_output(raw)
    return await _IMAGE_DISPATCH[shape](raw)


def normalize_text_output(raw: Any) -> str:
    text = _field(raw, TEXT_FIELD)

    if not isinstance(text, str):
        raise UnrecognizedOutputShape(
            "Generation service returned an unexpected text response format.",
            details=describe_shape(raw),
        )

    if not text.strip():
        raise EmptyPayload("Generation service returned an empty text response.")

    return text


async def _from_named_base64(raw: Any) -> str:
    encoded = _named_base64(raw)
    if not encoded or not encoded.strip():
        raise EmptyPayload("Generation service returned an empty image.")

    if isinstance(_field(raw, IMAGE_BASE64_FIELD), str):
        return encoded

    # Bare ``image`` strings are not labelled as base64; validate them.
    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UnrecognizedOutputShape(
            "Generation service returned an image string that is not base64.",
            details=describe_shape(raw),
        ) from exc
    return encode_base64(decoded)


async def _from_raw_bytes(raw: Any) -> str:
    return encode_base64(_coerce_bytes(raw))


async def _from_byte_stream(raw: Any) -> str:
    return encode_base64(await _drain(raw))


async def _from_nested(raw: Any) -> str:
    nested = _nested_value(raw)

    if _is_byte_sequence(nested):
        return encode_base64(_coerce_bytes(nested))
    if _is_byte_stream(nested):
        return encode_base64(await _drain(nested))

    raise UnrecognizedOutputShape(
        "Generation service returned an unexpected nested image value.",
        details=f"{describe_shape(raw)}; nested {describe_shape(nested)}",
    )


async def _unrecognized(raw: Any) -> str:
    raise UnrecognizedOutputShape(
        "Unexpected AI response structure.",
        details=describe_shape(raw),
    )


_IMAGE_DISPATCH: dict[OutputShape, Callable[[Any], Awaitable[str]]] = {
    OutputShape.NAMED_BASE64: _from_named_base64,
    OutputShape.RAW_BYTES: _from_raw_bytes,
    OutputShape.BYTE_STREAM: _from_byte_stream,
    OutputShape.NESTED: _from_nested,
    OutputShape.UNRECOGNIZED: _unrecognized,
}


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    if isinstance(raw, (bytes, bytearray, memoryview, str, list, tuple)):
        return None
    return getattr(raw, name, None)


def _named_base64(raw: Any) -> str | None:
    value = _field(raw, IMAGE_BASE64_FIELD)
    if isinstance(value, str):
        return value

    value = _field(raw, "image")
    if isinstance(value, str):
        return value

    return None


def _nested_value(raw: Any) -> Any:
    for name in NESTED_BYTE_FIELDS:
        value = _field(raw, name)
        if value is not None:
            return value
    return None


def _is_byte_sequence(value: Any) -> bool:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return True

    if isinstance(value, (list, tuple)):
        return all(
            isinstance(item, int) and not isinstance(item, bool) for item in value
        )

    return False


def _is_byte_stream(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray, memoryview, list, tuple, Mapping)):
        return False

    if any(callable(getattr(value, name, None)) for name in _READ_ACCESSORS):
        return True

    return isinstance(value, (AsyncIterable, Iterable))


def _coerce_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    try:
        return bytes(value)
    except ValueError as exc:
        raise UnrecognizedOutputShape(
            "Generation service returned a numeric array outside the byte range.",
            details=describe_shape(value),
        ) from exc


async def _drain(stream: Any) -> bytes:
    for name in _READ_ACCESSORS:
        accessor = getattr(stream, name, None)
        if callable(accessor):
            result = accessor()
            if inspect.isawaitable(result):
                result = await result
            return _chunk_bytes(result, stream)

    buffer = bytearray()
    if isinstance(stream, AsyncIterable):
        async for chunk in stream:
            buffer.extend(_chunk_bytes(chunk, stream))
    else:
        for chunk in stream:
            buffer.extend(_chunk_bytes(chunk, stream))
    return bytes(buffer)


def _chunk_bytes(chunk: Any, stream: Any) -> bytes:
    if isinstance(chunk, int) and not isinstance(chunk, bool):
        return bytes([chunk])
    if _is_byte_sequence(chunk):
        return _coerce_bytes(chunk)

    raise UnrecognizedOutputShape(
        "Generation service stream yielded a non-binary chunk.",
        details=f"{describe_shape(stream)}; chunk {describe_shape(chunk)}",
    )


def _format_names(names: list[str]) -> str:
    if len(names) > _MAX_DESCRIBED_NAMES:
        return str(names[:_MAX_DESCRIBED_NAMES])[:-1] + ", ...]"
    return str(names)
