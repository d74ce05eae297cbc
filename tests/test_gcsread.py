import pytest

from gridscan.gcs import GCSPath, GCSPathError, ObjectAttrs, ObjectNotFound
from gridscan.gcsread import (
    Build,
    list_builds,
    matches_suite,
    natural_key,
    parse_suites_meta,
    read_suites,
)
from gridscan.junit import JunitParseError


class FakeBucket:
    def __init__(self, objects=None, listing=None):
        self.objects = dict(objects or {})
        self.listing = listing
        self.queries = []

    def read(self, name):
        try:
            return self.objects[name]
        except KeyError:
            raise ObjectNotFound(name) from None

    def list_objects(self, prefix="", delimiter=""):
        self.queries.append((prefix, delimiter))
        if self.listing is not None:
            return list(self.listing)
        return [
            ObjectAttrs(name=name, size=len(data))
            for name, data in sorted(self.objects.items())
            if name.startswith(prefix)
        ]


class FakeClient:
    def __init__(self, buckets):
        self.buckets = buckets

    def bucket(self, name):
        return self.buckets[name]


SUITE_XML = b'<testsuite name="s" tests="1"><testcase name="t"/></testsuite>'


@pytest.mark.parametrize(
    "name,expected",
    [
        ("./started.json", None),
        ("./junit", None),
        ("./junit.xml", {"Context": "", "Timestamp": "", "Thread": ""}),
        (
            "./junit_hello world isn't-this exciting!.xml",
            {"Context": "hello world isn't-this exciting!", "Timestamp": "", "Thread": ""},
        ),
        ("./junit_12345.xml", {"Context": "12345", "Timestamp": "", "Thread": ""}),
        (
            "./junit_context_12345.xml",
            {"Context": "context", "Timestamp": "", "Thread": "12345"},
        ),
        (
            "./junit_context_20180102-1234.xml",
            {"Context": "context", "Timestamp": "20180102-1234", "Thread": ""},
        ),
        (
            "./junit_context_20180102-1234_5555.xml",
            {"Context": "context", "Timestamp": "20180102-1234", "Thread": "5555"},
        ),
        (
            "./junit.e2e_suite.3.xml",
            {"Context": ".e2e_suite.3", "Timestamp": "", "Thread": ""},
        ),
    ],
)
def test_parse_suites_meta(name, expected):
    assert parse_suites_meta(name) == expected
    assert matches_suite(name) == (expected is not None)


def test_natural_key_orders_numbers():
    assert natural_key("build8") < natural_key("build9")
    assert natural_key("build9") < natural_key("build10")
    assert natural_key("build10") < natural_key("build888")
    names = ["build888", "build10", "build9", "build8"]
    assert sorted(names, key=natural_key) == ["build8", "build9", "build10", "build888"]


def test_natural_key_digits_before_letters():
    assert natural_key("a1") < natural_key("ab")
    assert not natural_key("ab") < natural_key("a1")


def test_list_builds_sorted_and_links_resolved():
    listing = [
        ObjectAttrs(prefix="logs/job/8/"),
        ObjectAttrs(prefix="logs/job/10/"),
        ObjectAttrs(name="logs/job/9.txt", metadata={"link": " gs://bkt/pr-logs/9\n"}),
        ObjectAttrs(name="logs/job/latest-build.txt"),
    ]
    bucket = FakeBucket(listing=listing)
    builds = list_builds(FakeClient({"bkt": bucket}), GCSPath.parse("gs://bkt/logs/job"))
    assert [b.prefix for b in builds] == ["pr-logs/9/", "logs/job/10/", "logs/job/8/"]
    assert bucket.queries == [("logs/job/", "/")]
    assert str(builds[1]) == "gs://bkt/logs/job/10/"


def test_list_builds_uses_goog_meta_link():
    listing = [ObjectAttrs(name="x", metadata={"x-goog-meta-link": "gs://bkt/a/7"})]
    builds = list_builds(
        FakeClient({"bkt": FakeBucket(listing=listing)}), GCSPath.parse("gs://bkt/a/")
    )
    assert [b.prefix for b in builds] == ["a/7/"]


def test_list_builds_bad_link():
    listing = [ObjectAttrs(name="x", metadata={"link": "http://example.com/a"})]
    with pytest.raises(GCSPathError, match="could not make GCS path"):
        list_builds(FakeClient({"bkt": FakeBucket(listing=listing)}), GCSPath.parse("gs://bkt/a"))


def test_started_values():
    bucket = FakeBucket(
        {"logs/1/started.json": b'{"timestamp": 1500, "node": "n1", "repos": {"org/repo": "main"}}'}
    )
    info = Build(bucket, "logs/1/", "bkt").started()
    assert info.pending is False
    assert info.timestamp == 1500
    assert info.node == "n1"
    assert info.repos == {"org/repo": "main"}


def test_started_missing_is_pending():
    info = Build(FakeBucket(), "logs/1/", "bkt").started()
    assert info.pending is True
    assert info.timestamp == 0


def test_started_bad_json():
    bucket = FakeBucket({"logs/1/started.json": b"{nope"})
    with pytest.raises(ValueError, match="decode"):
        Build(bucket, "logs/1/", "bkt").started()


def test_finished_values_and_running():
    bucket = FakeBucket({"logs/1/finished.json": b'{"timestamp": 99, "passed": true, "result": "SUCCESS"}'})
    info = Build(bucket, "logs/1/", "bkt").finished()
    assert (info.timestamp, info.passed, info.result, info.running) == (99, True, "SUCCESS", False)
    missing = Build(bucket, "logs/2/", "bkt").finished()
    assert missing.running is True
    assert missing.passed is None


def test_artifacts_lists_prefix():
    bucket = FakeBucket({"logs/1/a.txt": b"a", "logs/1/b/c.txt": b"cc", "logs/2/d": b""})
    names = [a.name for a in Build(bucket, "logs/1/", "bkt").artifacts()]
    assert names == ["logs/1/a.txt", "logs/1/b/c.txt"]


def test_read_suites():
    bucket = FakeBucket({"x/junit.xml": SUITE_XML})
    suites = read_suites(bucket, "x/junit.xml")
    assert suites.unwrapped is True
    assert suites.suites[0].name == "s"


def test_suites_parses_only_junit_files():
    bucket = FakeBucket(
        {
            "logs/1/artifacts/junit_a.xml": SUITE_XML,
            "logs/1/artifacts/junit_b.xml": SUITE_XML,
            "logs/1/build-log.txt": b"not xml",
        }
    )
    build = Build(bucket, "logs/1/", "bkt")
    results = sorted(build.suites(build.artifacts()), key=lambda m: m.path)
    assert [m.path for m in results] == [
        "gs://bkt/logs/1/artifacts/junit_a.xml",
        "gs://bkt/logs/1/artifacts/junit_b.xml",
    ]
    assert all(m.suites.suites[0].results[0].name == "t" for m in results)


def test_suites_raises_on_bad_file():
    bucket = FakeBucket({"logs/1/junit_bad.xml": b"<other/>"})
    build = Build(bucket, "logs/1/", "bkt")
    with pytest.raises(JunitParseError):
        list(build.suites(build.artifacts()))