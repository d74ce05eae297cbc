# gridscan

Tools for reading the results of CI builds kept in bucket storage: build
listings, `started.json` / `finished.json` metadata and JUnit reports.

## Modules

### `gridscan.walk`

`walk(root, walk_fn)` goes through a directory tree. Entries are visited in
the order the operating system lists them, not sorted. Symbolic links are not
followed. For each entry it calls `walk_fn(path, info, error)`:

- `info` is the `os.lstat` result, or `None` when it could not be read.
- `error` is the `OSError` met while reading the entry or the directory
  listing, or `None`.

If the callback raises `SkipDir` for a directory, that directory is not
entered. If it raises `SkipDir` for a file, the rest of the containing
directory is skipped. Any other exception stops the walk and is passed on.

### `gridscan.metadata`

- `Metadata` is a `dict` with typed lookups:
  - `string(name)` and `meta(name)` return `(value, present)`. The value is
    `None` when the key is missing or holds the wrong type.
  - `valid_keys()` lists the keys.
  - `strings()` returns the entries whose values are strings.
- `Started.from_dict(data)` and `Finished.from_dict(data)` build the
  contents of a decoded `started.json` or `finished.json`. They raise
  `ValueError` when a field has the wrong type.
- `Finished.timestamp` and `Finished.passed` are `None` until the job sets
  them.

### `gridscan.junit`

- `parse(buf)` reads a `<testsuites>` document, or a bare `<testsuite>`, into
  `Suites`. A bare `<testsuite>` sets `Suites.unwrapped`.
  - `buf` may be `bytes` or `str`.
  - Input with no element at all gives an empty `Suites`.
  - A document that cannot be read, or one that declares a charset other than
    UTF-8, raises `JunitParseError`.
- Each `Suite` holds `name`, `time`, `failures`, `tests` and a list of
  `Result`.
- `Result.message(max_len)` returns the first non-empty text, checked in this
  order: failure, skipped, system-err, system-out. A message longer than
  `max_len` is cut in the middle with `...`. A `max_len` of 0 means no limit.

### `gridscan.gcs`

- `GCSPath.parse("gs://bucket/object")` checks a storage URL.
  `GCSPath.from_url(parts)` does the same for an already split URL.
  - Bad input raises `GCSPathError`: another scheme, a port, a `user@`, a
    query or a fragment.
  - A path has the properties `bucket` and `object`, and the method
    `resolve_reference(ref)`.
- `calc_crc(buf)` returns the CRC32C (Castagnoli) checksum of `buf`.
- `upload(client, path, buf, world_readable)` writes `buf` and sends its
  CRC32C with it. It raises `OSError` when the write fails or is partial.
  `DEFAULT` and `PUBLIC_READ` name the two `world_readable` choices.
- `ObjectAttrs` is a listing entry. `ObjectNotFound` is what a bucket raises
  for a missing object.

### `gridscan.gcsread`

- `list_builds(client, path)` lists the build prefixes under `path`.
  - Builds come newest first, using natural ordering (`natural_key`), so
    `build10` sorts after `build9`.
  - Entries that carry a `link` or `x-goog-meta-link` metadata value are
    followed to the build they point at.
- A `Build` has these methods:
  - `started()` returns a `StartedInfo`. `pending` is set when `started.json`
    is missing.
  - `finished()` returns a `FinishedInfo`. `running` is set when
    `finished.json` is missing.
  - `artifacts()` yields every object under the build.
  - `suites(artifacts)` parses the JUnit files among them in a thread pool.
    It yields `SuitesMeta` in no set order and raises the first failure.
- `matches_suite(name)` tells whether a name looks like a JUnit file.
- `parse_suites_meta(name)` splits a name such as
  `junit_context_20180102-1234_5555.xml` into `Context`, `Timestamp` and
  `Thread`.
- `read_suites(bucket, name)` reads and parses one report.

## Storage interface

`gridscan` does not include a cloud storage client and does not depend on any
cloud SDK. The caller passes in a client object that provides:

- `bucket(name)`, which returns a bucket object offering:
  - `list_objects(prefix="", delimiter="")`, which yields `ObjectAttrs`.
  - `read(name)`, which returns bytes. It raises `ObjectNotFound` when the
    object is missing.
  - `write(name, data, *, crc32c, public_read)`, which returns the number of
    bytes stored.

The package also has no command-line tool and no service. It is a library
only.

## Example

```python
from gridscan.gcs import GCSPath
from gridscan.junit import parse

path = GCSPath.parse("gs://bucket/logs/job")
print(path.bucket, path.object)   # bucket logs/job

suites = parse(b'<testsuite name="s"><testcase name="t"><failure>boom</failure></testcase></testsuite>')
for suite in suites.suites:
    for result in suite.results:
        print(result.name, result.message(0))   # t boom
```

## Running the tests

```
pip install -e .[test]
pytest
```