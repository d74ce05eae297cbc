"""Reading junit XML test reports."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Union
from xml.parsers.expat import errors as expat_errors


class JunitParseError(ValueError):
    """Raised when a document is neither <testsuites> nor <testsuite>."""


@dataclass
class Result:
    """One <testcase> result."""

    name: str = ""
    time: float = 0.0
    class_name: str = ""
    failure: Optional[str] = None
    output: Optional[str] = None
    error: Optional[str] = None
    skipped: Optional[str] = None

    def message(self, max_len: int) -> str:
        """Return the first non-empty failure, skipped, error or output text.

        A ``max_len`` of 0 means no limit; longer messages keep their head and
        tail around an ellipsis.
        """
        msg = next(
            (text for text in (self.failure, self.skipped, self.error, self.output) if text),
            "",
        )
        if max_len == 0 or len(msg) <= max_len:
            return msg
        half = int(max_len / 2)
        return msg[:half] + "..." + msg[len(msg) - half - 1:]


@dataclass
class Suite:
    """One <testsuite>."""

    name: str = ""
    time: float = 0.0
    failures: int = 0
    tests: int = 0
    results: List[Result] = field(default_factory=list)


@dataclass
class Suites:
    """A list of suites; ``unwrapped`` when the document had no <testsuites> root."""

    suites: List[Suite] = field(default_factory=list)
    unwrapped: bool = False


_DECLARATION = re.compile(r"\A\s*<\?xml\b[^>]*?\?>")
_ENCODING = re.compile(r"""encoding\s*=\s*["']([^"']*)["']""")
_INTEGER = re.compile(r"[+-]?\d+")
_NO_ELEMENTS = expat_errors.codes[expat_errors.XML_ERROR_NO_ELEMENTS]
_RESULT_CHILDREN = {
    "failure": "failure",
    "system-out": "output",
    "system-err": "error",
    "skipped": "skipped",
}


def _check_declaration(head: str) -> int:
    """Validate the XML declaration's charset; return where the document body starts."""
    decl = _DECLARATION.match(head)
    if decl is None:
        return 0
    found = _ENCODING.search(decl.group(0))
    charset = found.group(1) if found else ""
    if charset.lower() != "utf-8" and charset not in ("utf8", ""):
        raise JunitParseError(f"unknown charset: {charset}")
    return decl.end()


def _decode(buf: Union[bytes, bytearray, str]) -> str:
    if isinstance(buf, str):
        text = buf.removeprefix("\ufeff")
        return text[_check_declaration(text):]
    raw = bytes(buf).removeprefix(b"\xef\xbb\xbf")
    start = _check_declaration(raw[:1024].decode("latin-1"))
    try:
        return raw[start:].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise JunitParseError(f"invalid UTF-8: {exc}") from exc


def _read_root(text: str) -> Optional[ET.Element]:
    """Return the first complete element, or None when the input holds none."""
    parser = ET.XMLPullParser(events=("start", "end"))
    failure: Optional[ET.ParseError] = None
    try:
        parser.feed(text)
        parser.close()
    except ET.ParseError as exc:
        failure = exc
    root = None
    try:
        for event, elem in parser.read_events():
            if event == "start" and root is None:
                root = elem
            elif event == "end" and elem is root:
                return root
    except ET.ParseError as exc:
        failure = failure or exc
    if root is None and (failure is None or failure.code == _NO_ELEMENTS):
        return None
    raise JunitParseError(f"not valid testsuites nor testsuite: {failure}")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _chardata(elem: ET.Element) -> str:
    return (elem.text or "") + "".join(child.tail or "" for child in elem)


def _int_attr(elem: ET.Element, name: str) -> int:
    value = elem.get(name, "").strip()
    if not value:
        return 0
    if not _INTEGER.fullmatch(value):
        raise JunitParseError(f"invalid {name} attribute: {value!r}")
    return int(value)


def _float_attr(elem: ET.Element, name: str) -> float:
    value = elem.get(name, "").strip()
    if not value:
        return 0.0
    if "_" in value:
        raise JunitParseError(f"invalid {name} attribute: {value!r}")
    try:
        return float(value)
    except ValueError as exc:
        raise JunitParseError(f"invalid {name} attribute: {value!r}") from exc


def _result(elem: ET.Element) -> Result:
    texts = {}
    for child in elem:
        key = _RESULT_CHILDREN.get(_local(child.tag))
        if key is not None:
            texts[key] = _chardata(child)
    return Result(
        name=elem.get("name", ""),
        time=_float_attr(elem, "time"),
        class_name=elem.get("classname", ""),
        **texts,
    )


def _suite(elem: ET.Element) -> Suite:
    return Suite(
        name=elem.get("name", ""),
        time=_float_attr(elem, "time"),
        failures=_int_attr(elem, "failures"),
        tests=_int_attr(elem, "tests"),
        results=[_result(child) for child in elem if _local(child.tag) == "testcase"],
    )


def parse(buf: Union[bytes, bytearray, str]) -> Suites:
    """Parse a <testsuites> or bare <testsuite> junit document.

    Input with no element at all gives empty :class:`Suites`.
    """
    root = _read_root(_decode(buf))
    if root is None:
        return Suites()
    tag = _local(root.tag)
    if tag == "testsuites":
        return Suites(
            suites=[_suite(child) for child in root if _local(child.tag) == "testsuite"]
        )
    if tag == "testsuite":
        return Suites(suites=[_suite(root)], unwrapped=True)
    raise JunitParseError(f"not valid testsuites nor testsuite: unexpected element <{tag}>")