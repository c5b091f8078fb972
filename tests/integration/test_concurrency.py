import threading

from vromfs import RomFileSystem
from vromfs._pytest_plugin import make_header
from tests.helpers.concurrency import BlockingMaterializer, run_concurrent

DATA = bytes(range(256)) * 16


def test_concurrent_reads_materialize_once(romfs_factory):
    fs, codec = romfs_factory({"big.rom": DATA}, delay=0.05)
    fh = fs.open("/big.rom")

    def reader(i):
        return fs.read(fh, i * 100, 100)

    results, errors = run_concurrent(reader, n_threads=16)
    assert not any(errors)
    assert codec.calls == 1
    for i, chunk in enumerate(results):
        assert chunk == DATA[i * 100: i * 100 + 100]


def test_concurrent_reads_after_failure_retry_once(romfs_factory):
    fs, codec = romfs_factory({"big.rom": DATA}, delay=0.01, failures=1)
    fh = fs.open("/big.rom")

    def reader(i):
        try:
            return fs.read(fh, 0, 16)
        except OSError:
            return None

    results, errors = run_concurrent(reader, n_threads=8)
    assert not any(errors)
    # One caller saw the injected failure, the next materialized for everyone else.
    assert results.count(None) == 1
    assert codec.calls == 2
    assert all(r == DATA[:16] for r in results if r is not None)


def test_materialization_does_not_block_other_handles():
    blocking = BlockingMaterializer(b"slow" * 4)
    registry = {"slow.rom": make_header("slow.rom", 16), "fast.rom": make_header("fast.rom", 4)}

    def materializer(header):
        if header.patch_path == "slow.rom":
            return blocking(header)
        return b"fast"

    fs = RomFileSystem(registry, materializer=materializer)
    slow = fs.open("/slow.rom")
    t = threading.Thread(target=fs.read, args=(slow, 0, 16), daemon=True)
    t.start()
    assert blocking.entered.wait(timeout=5.0)
    try:
        # Table operations and other handles proceed while slow.rom materializes.
        fast = fs.open("/fast.rom")
        assert fs.read(fast, 0, 4) == b"fast"
        dh = fs.opendir("/")
        assert len(fs.readdir(dh)) == 4
        fs.releasedir(dh)
        fs.release(fast)
        assert fs.getattr("/slow.rom", slow)[0]["st_size"] == 16
    finally:
        blocking.release.set()
        t.join(timeout=5.0)
    assert fs.read(slow, 0, 4) == b"slow"
    assert blocking.calls == 1


def test_release_during_materialization_discards_result():
    blocking = BlockingMaterializer(b"x" * 32)
    fs = RomFileSystem({"a.rom": make_header("a.rom", 32)}, materializer=blocking)
    fh = fs.open("/a.rom")
    outcome = {}

    def reader():
        try:
            outcome["data"] = fs.read(fh, 0, 32)
        except OSError as exc:
            outcome["error"] = exc

    t = threading.Thread(target=reader, daemon=True)
    t.start()
    assert blocking.entered.wait(timeout=5.0)
    releaser = threading.Thread(target=fs.release, args=(fh,), daemon=True)
    releaser.start()
    blocking.release.set()
    t.join(timeout=5.0)
    releaser.join(timeout=5.0)
    assert outcome.get("data") == b"x" * 32
    stats = fs.stats()
    assert stats["open_files"] == 0
    assert stats["cached_bytes"] == 0


def test_concurrent_open_release_distinct_ids(romfs):
    def worker(_):
        ids = []
        for _ in range(100):
            fh = romfs.open("/a.rom")
            ids.append(fh)
            romfs.read(fh, 0, 10)
            romfs.release(fh)
        return ids

    results, errors = run_concurrent(worker, n_threads=8)
    assert not any(errors)
    all_ids = [fh for ids in results for fh in ids]
    assert len(all_ids) == 800
    assert len(set(all_ids)) == 800
    assert romfs.stats()["open_files"] == 0
    assert romfs.stats()["cached_bytes"] == 0
