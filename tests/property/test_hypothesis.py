"""Property-based tests using Hypothesis."""
from hypothesis import given, settings
import hypothesis.strategies as st

from vromfs import RomFileSystem, apply_patch
from vromfs._path import normalize_path
from vromfs._pytest_plugin import CountingMaterializer, make_header
from tests.helpers.bps import make_patch

names = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789_-", min_size=1, max_size=12).map(
    lambda s: s + ".rom"
)


def _fs(contents):
    codec = CountingMaterializer(contents)
    registry = {name: make_header(name, len(data)) for name, data in contents.items()}
    return RomFileSystem(registry, materializer=codec), codec


@given(
    data=st.binary(max_size=2000),
    reads=st.lists(
        st.tuples(st.integers(min_value=0, max_value=2500), st.integers(min_value=0, max_value=700)),
        min_size=1,
        max_size=10,
    ),
)
@settings(max_examples=50)
def test_read_matches_slice(data, reads):
    """Every read returns exactly the clamped slice; materialization happens once."""
    fs, codec = _fs({"f.rom": data})
    fh = fs.open("/f.rom")
    for offset, size in reads:
        assert fs.read(fh, offset, size) == data[offset: offset + size]
    assert codec.calls == 1


@given(files=st.dictionaries(keys=names, values=st.binary(max_size=64), max_size=8))
@settings(max_examples=50)
def test_readdir_lists_registry_once(files):
    fs, _ = _fs(files)
    fh = fs.opendir("/")
    listed = [e.name for e in fs.readdir(fh)]
    assert listed[:2] == [".", ".."]
    assert sorted(listed[2:]) == sorted(files)
    assert len(listed) == len(set(listed))


@given(
    files=st.dictionaries(keys=names, values=st.binary(max_size=16), min_size=1, max_size=4),
    ops=st.lists(st.sampled_from(["open", "opendir", "release"]), max_size=40),
)
@settings(max_examples=50)
def test_handle_ids_unique_and_released_ids_dead(files, ops):
    fs, _ = _fs(files)
    name = "/" + sorted(files)[0]
    issued: list[int] = []
    open_files: list[int] = []
    released: list[int] = []
    for op in ops:
        if op == "open":
            fh = fs.open(name)
            issued.append(fh)
            open_files.append(fh)
        elif op == "opendir":
            issued.append(fs.opendir("/"))
        elif open_files:
            fh = open_files.pop()
            fs.release(fh)
            released.append(fh)
    assert len(issued) == len(set(issued))
    for fh in released:
        try:
            fs.read(fh, 0, 1)
        except FileNotFoundError:
            continue
        raise AssertionError(f"released handle {fh} still readable")
    assert fs.stats()["open_files"] == len(open_files)


@given(source=st.binary(max_size=300), target=st.binary(max_size=300))
@settings(max_examples=50)
def test_apply_patch_reproduces_target(source, target):
    assert apply_patch(source, make_patch(source, target)) == target


@given(path=st.text(alphabet="/abcdefghijklmnopqrstuvwxyz._-", min_size=1, max_size=50))
@settings(max_examples=50)
def test_normalize_path_idempotent(path):
    try:
        normalized = normalize_path(path)
    except ValueError:
        return  # Path traversal - acceptable
    assert normalize_path(normalized) == normalized
