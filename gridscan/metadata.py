"""Job metadata as stored in started.json and finished.json."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


class Metadata(dict):
    """A finished.json metadata map: values are strings or nested maps."""

    def string(self, name: str) -> Tuple[Optional[str], bool]:
        """Return the value of ``name`` if it is a string, and whether the key exists."""
        if name not in self:
            return None, False
        value = self[name]
        if isinstance(value, str):
            return value, True
        return None, True

    def meta(self, name: str) -> Tuple[Optional["Metadata"], bool]:
        """Return the value of ``name`` if it is a nested map, and whether the key exists."""
        if name not in self:
            return None, False
        value = self[name]
        if isinstance(value, Metadata):
            return value, True
        if isinstance(value, dict):
            return Metadata(value), True
        return None, True

    def valid_keys(self) -> List[str]:
        """Return the keys of all valid metadata values."""
        return [key for key in self if self.meta(key)[1]]

    def strings(self) -> Dict[str, str]:
        """Return the entries whose values are strings."""
        return {key: value for key, value in self.items() if isinstance(value, str)}


def _field(data: Mapping[str, Any], key: str, kinds, default, nullable: bool = False):
    if key not in data:
        return default
    value = data[key]
    if value is None:
        return None if nullable else default
    if isinstance(value, bool) and bool not in kinds:
        raise ValueError(f"{key}: expected {kinds[0].__name__}, got bool")
    if not isinstance(value, kinds):
        raise ValueError(f"{key}: expected {kinds[0].__name__}, got {type(value).__name__}")
    return value


def _metadata(data: Mapping[str, Any]) -> Metadata:
    value = _field(data, "metadata", (dict,), None)
    return Metadata(value or {})


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected an object, got {type(data).__name__}")
    return data


@dataclass
class Started:
    """The values of a build's started.json."""

    timestamp: int = 0
    node: str = ""
    pull: str = ""
    repo_version: str = ""
    repos: Dict[str, str] = field(default_factory=dict)
    metadata: Metadata = field(default_factory=Metadata)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Started":
        """Build from decoded started.json; raises ValueError on mistyped fields."""
        data = _require_mapping(data)
        repos = _field(data, "repos", (dict,), None) or {}
        for repo, ref in repos.items():
            if not isinstance(ref, str):
                raise ValueError(f"repos.{repo}: expected str, got {type(ref).__name__}")
        return cls(
            timestamp=_field(data, "timestamp", (int,), 0),
            node=_field(data, "node", (str,), ""),
            pull=_field(data, "pull", (str,), ""),
            repo_version=_field(data, "repo-version", (str,), ""),
            repos=dict(repos),
            metadata=_metadata(data),
        )


@dataclass
class Finished:
    """The values of a build's finished.json; ``timestamp`` is None while incomplete."""

    timestamp: Optional[int] = None
    passed: Optional[bool] = None
    metadata: Metadata = field(default_factory=Metadata)
    job_version: str = ""
    result: str = ""
    revision: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Finished":
        """Build from decoded finished.json; raises ValueError on mistyped fields."""
        data = _require_mapping(data)
        return cls(
            timestamp=_field(data, "timestamp", (int,), None, nullable=True),
            passed=_field(data, "passed", (bool,), None, nullable=True),
            metadata=_metadata(data),
            job_version=_field(data, "job-version", (str,), ""),
            result=_field(data, "result", (str,), ""),
            revision=_field(data, "revision", (str,), ""),
        )