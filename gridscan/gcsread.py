"""Reading build results (started, finished, junit suites) from a bucket.

Buckets and clients follow the duck-typed interface described in
:mod:`gridscan.gcs`.
"""

from __future__ import annotations

import json
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import urlsplit

from gridscan import junit
from gridscan.gcs import GCSPath, GCSPathError, ObjectAttrs, ObjectNotFound
from gridscan.metadata import Finished, Started

_MAX_WORKERS = 16

# junit_CONTEXT_TIMESTAMP_THREAD.xml
_SUITE_RE = re.compile(r".+/junit((_[^_]+)?(_\d+-\d+)?(_\d+)?|.+)?\.xml\Z")
_CHUNK_RE = re.compile(r"\d+|\D+")


@dataclass
class StartedInfo(Started):
    """started.json data; ``pending`` when the job has not started yet."""

    pending: bool = False


@dataclass
class FinishedInfo(Finished):
    """finished.json data; ``running`` when finished.json does not exist yet."""

    running: bool = False


@dataclass
class SuitesMeta:
    """Parsed junit suites and the gs:// path of the file they came from."""

    suites: junit.Suites
    path: str


def natural_key(text: str) -> Tuple:
    """Sort key ordering digit runs numerically, so build8 < build9 < build10."""
    key = []
    for chunk in _CHUNK_RE.findall(text):
        if chunk.isdigit():
            key.append((0, int(chunk), len(chunk)))
        else:
            key.append((1, chunk))
    return tuple(key)


def _values(obj: Any) -> Dict[str, Any]:
    return {f.name: getattr(obj, f.name) for f in fields(obj)}


def _read_json(bucket: Any, uri: str) -> Any:
    data = bucket.read(uri)
    try:
        decoded = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"read {uri}: decode: {exc}") from exc
    return {} if decoded is None else decoded


@dataclass
class Build:
    """A build stored under a prefix of a bucket."""

    bucket: Any
    prefix: str
    bucket_path: str

    def __str__(self) -> str:
        return f"gs://{self.bucket_path}/{self.prefix}"

    def started(self) -> StartedInfo:
        """Parse started.json; a missing file means the build is pending."""
        uri = self.prefix + "started.json"
        try:
            data = _read_json(self.bucket, uri)
        except ObjectNotFound:
            return StartedInfo(pending=True)
        try:
            return StartedInfo(**_values(Started.from_dict(data)))
        except ValueError as exc:
            raise ValueError(f"read {uri}: decode: {exc}") from exc

    def finished(self) -> FinishedInfo:
        """Parse finished.json; a missing file means the build is running."""
        uri = self.prefix + "finished.json"
        try:
            data = _read_json(self.bucket, uri)
        except ObjectNotFound:
            return FinishedInfo(running=True)
        try:
            return FinishedInfo(**_values(Finished.from_dict(data)))
        except ValueError as exc:
            raise ValueError(f"read {uri}: decode: {exc}") from exc

    def artifacts(self) -> Iterator[ObjectAttrs]:
        """Yield every object under the build's prefix."""
        yield from self.bucket.list_objects(prefix=self.prefix)

    def suites(self, artifacts: Iterable[ObjectAttrs]) -> Iterator[SuitesMeta]:
        """Parse the junit files among ``artifacts`` concurrently.

        Results come in no particular order; the first failure is raised.
        """
        with ThreadPoolExecutor(max_workers=_MAX_WORKERS) as pool:
            pending = {
                pool.submit(read_suites, self.bucket, art.name): art.name
                for art in artifacts
                if matches_suite(art.name)
            }
            try:
                for future in as_completed(pending):
                    yield SuitesMeta(
                        suites=future.result(),
                        path=f"gs://{self.bucket_path}/{pending[future]}",
                    )
            finally:
                for future in pending:
                    future.cancel()


def list_builds(client: Any, path: GCSPath) -> List[Build]:
    """Return the builds under ``path``, newest (naturally greatest) first."""
    prefix = path.object
    if not prefix.endswith("/"):
        prefix += "/"
    bucket = client.bucket(path.bucket)
    builds = []
    for attrs in bucket.list_objects(prefix=prefix, delimiter="/"):
        link = attrs.metadata.get("link") or attrs.metadata.get("x-goog-meta-link") or ""
        if link:
            link = link.strip()
            try:
                parts = urlsplit(link)
            except ValueError as exc:
                raise GCSPathError(f"could not parse link for key {attrs.name}: {exc}") from exc
            if not parts.path.endswith("/"):
                parts = parts._replace(path=parts.path + "/")
            try:
                link_path = GCSPath.from_url(parts)
            except GCSPathError as exc:
                raise GCSPathError(
                    f"could not make GCS path for key {attrs.name}: {exc}"
                ) from exc
            builds.append(Build(bucket, link_path.object, path.bucket))
            continue
        if not attrs.prefix:
            continue
        builds.append(Build(bucket, attrs.prefix, path.bucket))
    builds.sort(key=lambda build: natural_key(build.prefix), reverse=True)
    return builds


def matches_suite(name: str) -> bool:
    """Return whether ``name`` looks like a junit result file."""
    return _SUITE_RE.search(name) is not None


def parse_suites_meta(name: str) -> Optional[Dict[str, str]]:
    """Return Context, Timestamp and Thread from a junit file name, or None."""
    match = _SUITE_RE.search(name)
    if match is None:
        return None
    context, timestamp, thread = (
        (match.group(index) or "")[1:] for index in (2, 3, 4)
    )
    if not (context or timestamp or thread):
        context = match.group(1) or ""
    return {"Context": context, "Timestamp": timestamp, "Thread": thread}


def read_suites(bucket: Any, name: str) -> junit.Suites:
    """Read and parse the <testsuites> or <testsuite> object ``name``."""
    return junit.parse(bucket.read(name))