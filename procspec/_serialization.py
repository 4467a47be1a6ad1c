"""JSON encoding helpers backed by msgspec."""

from typing import Any, Literal, Union, overload

from msgspec.json import Decoder, Encoder

__all__ = ("decode_json", "encode_json")


def _type_to_string(value: Any) -> str:
    return str(value)


_encoder = Encoder(enc_hook=_type_to_string, decimal_format="number")
_decoder = Decoder()


@overload
def encode_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def encode_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def encode_json(data: Any, *, as_bytes: bool = False) -> Union[str, bytes]:
    """Encode ``data`` as JSON.

    Args:
        data: Value to encode. Types msgspec cannot encode fall back to ``str()``.
        as_bytes: Return the raw bytes instead of a decoded string.

    Returns:
        The JSON document.
    """
    encoded = _encoder.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def decode_json(data: Union[str, bytes]) -> Any:
    """Decode a JSON document."""
    return _decoder.decode(data)
