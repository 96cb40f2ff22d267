"""
either_adapter.tier1_runtime.serialize
────────────────────────────────────────
Body decoders. A decoder turns raw response bytes into a typed value and
raises DecodeError on malformed input. Decoders never see empty bodies;
the dispatcher short-circuits those to an absent value.

Usage:
    decoder = decoder_for(Person)          # pydantic model, dataclass, dict, ...
    person = decoder.decode(b'{"firstName": "First", "lastName": "Last"}')
"""
from __future__ import annotations

from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from either_adapter.tier0_core.errors import DecodeError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class Decoder(Protocol[T_co]):
    def decode(self, body: bytes) -> T_co: ...


class TypeDecoder(Generic[T]):
    """
    Decode a JSON body into any type pydantic can validate: BaseModel
    subclasses, dataclasses, TypedDicts, builtin containers.
    """

    def __init__(self, tp: type[T] | Any) -> None:
        self._type = tp
        self._adapter: TypeAdapter[T] = TypeAdapter(tp)

    @property
    def type(self) -> Any:
        return self._type

    def decode(self, body: bytes) -> T:
        try:
            return self._adapter.validate_json(body)
        except PydanticValidationError as exc:
            fields = {
                ".".join(str(loc) for loc in err["loc"]): err["msg"]
                for err in exc.errors()
            }
            raise DecodeError(
                f"Cannot decode response body as {_type_name(self._type)}: "
                f"{exc.error_count()} validation error(s)",
                fields=fields,
            ) from exc

    def __repr__(self) -> str:
        return f"TypeDecoder({_type_name(self._type)})"


class RawDecoder:
    """Pass the body through unchanged."""

    def decode(self, body: bytes) -> bytes:
        return bytes(body)


class TextDecoder:
    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def decode(self, body: bytes) -> str:
        try:
            return body.decode(self._encoding)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Response body is not valid {self._encoding}") from exc


def decoder_for(tp: Any) -> Decoder[Any]:
    """Pick a decoder for a declared result type."""
    if tp is bytes:
        return RawDecoder()
    if tp is str:
        return TextDecoder()
    return TypeDecoder(tp)


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


__all__ = ["Decoder", "TypeDecoder", "RawDecoder", "TextDecoder", "decoder_for"]
