# yaklog

These are building blocks for structured logging. The package has no dependencies beyond the
standard library.

- **`yaklog.rotation.writer`**: `RotatingWriter` writes to a file and rotates it by size. It can
  gzip old files, and it prunes them by count, by age and by total size. It can check for free
  disk space, and it refuses to follow symlinks.
- **`yaklog.rotation.options`**: `RotationOptions`, `apply_defaults`, `validate` and the
  `RotationError` family of errors.
- **`yaklog.sampling`**: the `Level` enum, the `Sampler` base class, `RateSampler`, a token
  bucket, and `HashSampler`, which keeps a stable fraction of records and lets each level have
  its own rate.
- **`yaklog.hooks`**: fatal and panic actions that you can replace, and callbacks for dropped
  records and failed writes.
- **`yaklog.util`**: encoding helpers for timestamps, level names, JSON strings, text values
  and floats.
- **`yaklog.sink`**: the output targets `console()`, `save()`, `open_save()` and `discard()`.
  `open_save()` checks a path before it opens it.

## Install

```
pip install .
```

## Rotating file writer

```python
from yaklog.rotation.writer import RotatingWriter

with RotatingWriter(
    "/var/log/app",
    "app",
    max_size=100 << 20,   # 100 MiB per file
    max_backups=7,
    compress=True,
    min_free_bytes=200 << 20,
) as w:
    w.write(b'{"level":"INFO","msg":"started"}\n')
```

The writer writes to `<dir>/<filename><ext>`.

**Settings and defaults**

- The directory must be an absolute path.
- The filename must be a bare name, with no path separators.
- `ext` defaults to `.log`.
- `max_size` defaults to 100 MiB and must be at least 1024 bytes.
- `max_backups` is capped at 1000.
- `max_age` is measured in days and is capped at 3650.

**Rotation**

When the current file reaches `max_size`, the writer renames it to
`<filename>-YYYYMMDD-HHMMSS.mmm<ext>` and opens a fresh file. The timestamp is in UTC unless
`local_time=True`. If that name is already taken, the writer appends `-2`, `-3`, … to the
timestamp. If a single write is at least `max_size` bytes and the file already has content, the
writer rotates before the write. `rotate()` forces a rotation.

**Compression**

With `compress=True`, each backup is gzipped in a background thread. At most two compressions
run at once. If both are busy, the next one runs synchronously inside the write.

**Retention**

After each rotation, a background thread applies the retention limits:

- backups older than `max_age` days are removed;
- then only the newest `max_backups` are kept;
- then the oldest are removed until the total size is within `max_total_size`.

`close()` applies the same limits once more, synchronously.

**Failures and health**

If a file write fails, the writer calls `on_write_error(exc, data)`. Without that callback it
copies the data to standard error. In both cases the exception is raised again. `healthy()`
returns `True` while the writer is open and its last write succeeded.

**Replacing the writer's functions**

You can replace `now_fn`, `available_bytes_fn` and `compress_fn` on an instance. They are the
clock, the free-space query and the compressor. The module-level defaults are
`available_bytes(path)` and `compress_file(src)`.

**Errors**

Invalid settings raise subclasses of `RotationError`:

- `InvalidDirError`
- `DirNotAbsError`
- `InvalidFilenameError`
- `InvalidMaxSizeError`
- `PathTraversalError`
- `SymlinkDetectedError`
- `InsufficientDiskSpaceError`

`write()` and `rotate()` after `close()` raise `WriterClosedError`. A second `close()` does
nothing.

## File sink with path safety checks

```python
from yaklog.sink import open_save

w = open_save("logs/app.log", 100, 5, 30, True, False)
# arguments: path, max size in MiB, max backups, max age in days, compress, local time
```

The path is made absolute at the moment of the call. If the file has no extension, `.log` is
used. An empty path raises `InvalidPathError`. A symlink raises `SymlinkDetectedError`.

An existing file raises `NotLogFileError` if any of these is true:

- it is not a regular file;
- it has an executable bit set;
- it starts with an ELF, Mach-O or PE magic number.

You can also call these checks on their own: `check_existing_file(path, info)` and
`is_binary_magic(path)`.

The other sinks:

- `console(stream)` wraps a stream, which defaults to standard error. It decodes bytes when the
  stream is a text stream.
- `discard()` throws everything away.
- `save(path)` returns a `LazySave`. This only records a path: writing to it raises
  `ValueError`, and you open the actual file with `open_save`.

## Sampling

```python
from yaklog.sampling import HashSampler, RateSampler, Level

s = HashSampler(0.1)
s.set_rate_for_level(Level.ERROR, 1.0)
s.sample(Level.ERROR, "disk full")   # always True

r = RateSampler(100, 10)             # 100/s, burst of 10
r.sample(Level.INFO, "msg")
```

`HashSampler` uses a random key that is new for each process. Its results are stable within a
process but differ between processes. `set_rate(rate)` changes every level at once. A rate of 0
or less drops everything, and a rate of 1 or more keeps everything.

## Hooks

```python
from yaklog import hooks

old = hooks.get_fatal_func()
hooks.set_fatal_func(lambda code: print("exit", code))
hooks.set_on_write_error(lambda err: print("write failed:", err))
hooks.fire_on_write_error(OSError("disk"))
hooks.set_fatal_func(old)
```

- The default fatal action calls `sys.exit(code)`.
- The default panic action raises `LogPanic(msg)`.
- `fire_on_drop`, `fire_on_write_error` and `safe_emit_event_sink` swallow any exception that a
  callback raises.

## What this package does not do

The package provides no logger object. You cannot build records with chained field methods,
and there is no JSON or console record encoder, no asynchronous write queue and no global
configuration. The samplers, hooks, sinks and helpers here are the parts such a logger would be
built on. Nothing in the package calls the hooks on its own.

## Tests

```
pip install .[test]
pytest
```