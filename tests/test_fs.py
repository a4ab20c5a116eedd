import pytest

from migrate.source.fs import VFS, FsDriver, MapFS, new
from migrate.source.migration import DuplicateMigrationError

MIGRATIONS = {
    "1_foobar.up.sql": "1 up",
    "1_foobar.down.sql": "1 down",
    "3_foobar.up.sql": "3 up",
    "4_foobar.up.sql": "4 up",
    "4_foobar.down.sql": "4 down",
    "5_foobar.down.sql": "5 down",
    "7_foobar.up.sql": "7 up",
    "7_foobar.down.sql": "7 down",
}

PREV = {0: None, 1: None, 2: None, 3: 1, 4: 3, 5: 4, 6: None, 7: 5, 8: None, 9: None}
NEXT = {0: None, 1: 3, 2: None, 3: 4, 4: 5, 5: 7, 6: None, 7: None, 8: None, 9: None}
PRESENT = {"up": {1, 3, 4, 7}, "down": {1, 4, 5, 7}}

STEPS = [
    (method, version, expected)
    for method, table in (("prev", PREV), ("next", NEXT))
    for version, expected in table.items()
]
READS = [(direction, version) for direction in PRESENT for version in range(9)]


def _write_tree(root, files):
    root.mkdir(parents=True, exist_ok=True)
    for name, body in files.items():
        (root / name).write_text(body)


@pytest.fixture
def data_root(tmp_path):
    base = tmp_path / "testdata"
    _write_tree(base / "sql", MIGRATIONS)
    _write_tree(base / "duplicates", {"1_foo.up.sql": "", "1_bar.up.sql": ""})
    _write_tree(base / "no-migrations", {"readme.txt": "nothing here"})
    return base


@pytest.fixture(params=["new", "root", "partial", "vfs", "mapfs", "vfs_subdir"])
def driver(request, data_root):
    kind = request.param
    if kind == "new":
        return new(data_root, "sql")
    if kind == "root":
        return new(data_root / "sql", "")
    if kind == "partial":
        d = FsDriver()
        d.init(data_root / "sql", "")
        return d
    if kind == "vfs":
        return VFS.with_instance(MIGRATIONS, "")
    nested = MapFS({f"migrations/{k}": v for k, v in MIGRATIONS.items()})
    if kind == "mapfs":
        return new(nested, "migrations")
    return VFS.with_instance(nested, "/migrations")


def test_first(driver):
    assert driver.first() == 1


@pytest.mark.parametrize("method,version,expected", STEPS)
def test_step(driver, method, version, expected):
    step = getattr(driver, method)
    if expected is None:
        with pytest.raises(FileNotFoundError):
            step(version)
    else:
        assert step(version) == expected


@pytest.mark.parametrize("direction,version", READS)
def test_read(driver, direction, version):
    read = getattr(driver, f"read_{direction}")
    if version in PRESENT[direction]:
        body, identifier = read(version)
        with body:
            assert body.read() == f"{version} {direction}".encode()
        assert identifier == "foobar"
    else:
        with pytest.raises(FileNotFoundError):
            read(version)


def test_error_carries_operation_and_path(data_root):
    d = new(data_root, "sql")
    with pytest.raises(FileNotFoundError) as prev_exc:
        d.prev(2)
    assert prev_exc.value.strerror == "prev for version 2"
    assert prev_exc.value.filename == "sql"
    with pytest.raises(FileNotFoundError) as read_exc:
        d.read_up(5)
    assert read_exc.value.strerror == "read up for version 5"


def test_new_errors_on_missing_dir(data_root):
    with pytest.raises(FileNotFoundError):
        new(data_root / "does-not-exist", "")


def test_init_on_file_instead_of_dir(data_root):
    d = FsDriver()
    with pytest.raises(NotADirectoryError):
        d.init(data_root / "sql" / "1_foobar.up.sql", "")


def test_init_with_duplicates(data_root):
    d = FsDriver()
    with pytest.raises(DuplicateMigrationError, match="duplicate migration file: 1_"):
        d.init(data_root / "duplicates", "")


def test_first_with_no_migrations(data_root):
    d = new(data_root, "no-migrations")
    with pytest.raises(FileNotFoundError) as exc:
        d.first()
    assert exc.value.filename == "no-migrations"


def test_directories_are_skipped(tmp_path):
    (tmp_path / "1_foo.up.sql").write_text("")
    (tmp_path / "2_bar.up.sql").mkdir()
    d = new(tmp_path, "")
    assert d.first() == 1
    with pytest.raises(FileNotFoundError):
        d.next(1)


def test_read_of_removed_file_fails(tmp_path):
    (tmp_path / "1_foo.up.sql").write_text("x")
    d = new(tmp_path, "")
    (tmp_path / "1_foo.up.sql").unlink()
    with pytest.raises(FileNotFoundError):
        d.read_up(1)


def test_open_on_passthrough_driver(data_root):
    d = new(data_root / "sql", "")
    with pytest.raises(RuntimeError):
        d.open("")


def test_vfs_open_fails():
    with pytest.raises(RuntimeError):
        VFS().open("")


def test_vfs_default_search_path_in_errors():
    d = VFS.with_instance({}, "")
    with pytest.raises(FileNotFoundError) as exc:
        d.first()
    assert exc.value.filename == "/"


def test_close_closes_closable_fs():
    class ClosingFS(MapFS):
        closed = False

        def close(self):
            self.closed = True

    fs = ClosingFS(MIGRATIONS)
    d = new(fs, "")
    d.close()
    assert fs.closed is True


def test_mapfs_tree():
    fs = MapFS({"a/b.sql": "x", "a/c/d.sql": "y", "/e.sql": "z"})
    assert [n.name for n in fs.iterdir()] == ["a", "e.sql"]
    assert [n.name for n in fs.joinpath("a").iterdir()] == ["b.sql", "c"]
    assert fs.joinpath("a", "c").is_dir()
    assert fs.joinpath("a/c/d.sql").read_text() == "y"
    assert (fs / "e.sql").read_bytes() == b"z"


def test_mapfs_missing_and_not_dir():
    fs = MapFS({"a.sql": "x"})
    with pytest.raises(FileNotFoundError):
        fs.joinpath("missing.sql").open("rb")
    with pytest.raises(NotADirectoryError):
        list(fs.joinpath("a.sql").iterdir())
    with pytest.raises(FileNotFoundError):
        list(fs.joinpath("nowhere").iterdir())