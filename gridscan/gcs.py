"""gs://bucket/object paths, CRC32C checksums and uploads.

Storage access is duck-typed. A *client* has ``bucket(name)`` returning a
*bucket* object, which offers:

* ``list_objects(prefix="", delimiter="")`` yielding :class:`ObjectAttrs`;
* ``read(name)`` returning the object's bytes, raising :class:`ObjectNotFound`
  when it does not exist;
* ``write(name, data, *, crc32c, public_read)`` returning the number of bytes
  stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Union
from urllib.parse import SplitResult, unquote, urlsplit, urlunsplit

log = logging.getLogger(__name__)

# ACL choices for upload().
DEFAULT = False
PUBLIC_READ = True


class GCSPathError(ValueError):
    """Raised for a string or URL that is not a valid gs://bucket/object path."""


class ObjectNotFound(LookupError):
    """Raised by a bucket when the requested object does not exist."""


@dataclass
class ObjectAttrs:
    """A listing entry: an object, or a common prefix when ``prefix`` is set."""

    name: str = ""
    prefix: str = ""
    size: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)


def _host(parts: SplitResult) -> str:
    return parts.netloc.rpartition("@")[2]


@dataclass(frozen=True)
class GCSPath:
    """A validated gs://bucket/object URL."""

    url: SplitResult

    def __post_init__(self) -> None:
        parts = self.url
        shown = urlunsplit(parts)
        if parts.scheme != "gs":
            raise GCSPathError(f"must use a gs:// url: {shown}")
        if ":" in _host(parts):
            raise GCSPathError(f"gs://bucket may not contain a port: {shown}")
        if not parts.netloc and parts.path and not parts.path.startswith("/"):
            raise GCSPathError(f"url must start with gs://: {shown}")
        if "@" in parts.netloc:
            raise GCSPathError(f"gs://bucket may not contain an user@ prefix: {shown}")
        if parts.query:
            raise GCSPathError(f"gs:// url may not contain a ?query suffix: {shown}")
        if parts.fragment:
            raise GCSPathError(f"gs:// url may not contain a #fragment suffix: {shown}")

    @classmethod
    def parse(cls, value: str) -> "GCSPath":
        """Parse and validate a gs://bucket/object string."""
        try:
            parts = urlsplit(value)
        except ValueError as exc:
            raise GCSPathError(f"invalid gs:// url {value}: {exc}") from exc
        return cls(parts)

    @classmethod
    def from_url(cls, parts: SplitResult) -> "GCSPath":
        """Validate already split URL parts."""
        if parts is None:
            raise GCSPathError("nil url")
        return cls(parts)

    def __str__(self) -> str:
        return urlunsplit(self.url)

    @property
    def bucket(self) -> str:
        """The bucket in gs://bucket/obj."""
        return _host(self.url)

    @property
    def object(self) -> str:
        """The path/to/something in gs://bucket/path/to/something."""
        path = unquote(self.url.path)
        return path[1:] if path else ""

    def resolve_reference(self, ref: Union[str, SplitResult]) -> "GCSPath":
        """Resolve ``ref`` relative to this path."""
        if isinstance(ref, str):
            try:
                ref = urlsplit(ref)
            except ValueError as exc:
                raise GCSPathError(f"invalid reference {ref}: {exc}") from exc
        base = self.url
        if ref.scheme or ref.netloc:
            parts = ref._replace(
                scheme=ref.scheme or base.scheme, path=_resolve_path(ref.path, "")
            )
            return GCSPath(parts)
        query, fragment = ref.query, ref.fragment
        if not ref.path and not ref.query:
            query = base.query
            fragment = ref.fragment or base.fragment
        parts = SplitResult(
            base.scheme, base.netloc, _resolve_path(base.path, ref.path), query, fragment
        )
        return GCSPath(parts)


def _resolve_path(base: str, ref: str) -> str:
    if not ref:
        full = base
    elif not ref.startswith("/"):
        full = base[: base.rfind("/") + 1] + ref
    else:
        full = ref
    if not full:
        return ""
    segments = full.split("/")
    out = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            if out:
                out.pop()
            continue
        out.append(segment)
    if segments[-1] in (".", ".."):
        out.append("")
    result = "/" + "/".join(out)
    if len(result) > 1 and result[1] == "/":
        result = result[1:]
    return result


def _make_table() -> tuple:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = (crc >> 1) ^ 0x82F63B78 if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_CASTAGNOLI = _make_table()


def calc_crc(buf: Union[bytes, bytearray]) -> int:
    """Return the CRC32C (Castagnoli) checksum of ``buf``."""
    crc = 0xFFFFFFFF
    for byte in bytes(buf):
        crc = _CASTAGNOLI[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


def upload(client: Any, path: GCSPath, buf: bytes, world_readable: bool) -> None:
    """Write ``buf`` to ``path``, sending its CRC32C so the store can verify it."""
    crc = calc_crc(buf)
    bucket = client.bucket(path.bucket)
    try:
        written = bucket.write(
            path.object, bytes(buf), crc32c=crc, public_read=bool(world_readable)
        )
    except Exception as exc:
        raise OSError(f"writing {path} failed: {exc}") from exc
    log.info("Uploading %s: %d/%d...", path, written, len(buf))
    if written != len(buf):
        raise OSError(f"partial write of {path}: {written} < {len(buf)}")