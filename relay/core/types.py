from __future__ import annotations

from enum import Enum

DEFAULT_IMAGE_MODEL_ID = "@cf/stabilityai/stable-diffusion-xl-lightning"
DEFAULT_TEXT_MODEL_ID = "@cf/meta/llama-2-7b-chat-int8"

IMAGE_BASE64_FIELD = "image_base64"
NESTED_BYTE_FIELDS = ("data", "image")
TEXT_FIELD = "response"


class OutputShape(str, Enum):
    NAMED_BASE64 = "named_base64"
    RAW_BYTES = "raw_bytes"
    BYTE_STREAM = "byte_stream"
    NESTED = "nested"
    UNRECOGNIZED = "unrecognized"
