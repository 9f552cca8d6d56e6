"""Pluggable byte transforms applied to published blobs."""

from __future__ import annotations

import gzip
import json
from typing import Any, Protocol

import msgpack
import zstandard


class Codec(Protocol):
    extension: str

    def encode(self, obj: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


class JsonCodec:
    extension = "json"

    def encode(self, obj: Any) -> bytes:
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class GzipJsonCodec:
    extension = "json.gz"

    def __init__(self, level: int = 9):
        self.level = level

    def encode(self, obj: Any) -> bytes:
        # mtime=0 keeps identical payloads byte-identical across runs
        return gzip.compress(JsonCodec().encode(obj), compresslevel=self.level, mtime=0)

    def decode(self, data: bytes) -> Any:
        return JsonCodec().decode(gzip.decompress(data))


class MsgpackZstdCodec:
    """MessagePack payload compressed with zstd, the format of published history blobs."""

    extension = "msgpack.zst"

    def __init__(self, level: int = 19):
        self.level = level

    def encode(self, obj: Any) -> bytes:
        packed = msgpack.packb(obj, use_bin_type=True)
        return zstandard.ZstdCompressor(level=self.level).compress(packed)

    def decode(self, data: bytes) -> Any:
        try:
            packed = zstandard.ZstdDecompressor().decompress(data)
        except zstandard.ZstdError as exc:
            raise ValueError(f"not a zstd frame: {exc}") from exc
        return msgpack.unpackb(packed, raw=False)


_CODECS = {
    "json": JsonCodec,
    "gzip": GzipJsonCodec,
    "msgpack-zstd": MsgpackZstdCodec,
}


def get_codec(name: str) -> Codec:
    try:
        return _CODECS[name]()
    except KeyError:
        raise ValueError(f"Unknown codec {name!r}; expected one of {sorted(_CODECS)}") from None
