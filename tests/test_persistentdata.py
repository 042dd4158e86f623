import os

import pytest

from cloudquery.persistentdata import IsDirectoryError, PersistentFile, Value

FN = "the-file"


@pytest.fixture
def dirs(tmp_path):
    home = tmp_path / "home"
    data = tmp_path / "work" / ".cq"
    home.mkdir()
    return home, data


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def test_read_order_prefers_home(dirs):
    home, data = dirs
    _write(data / FN, "bar")
    _write(home / ".cq" / FN, "foo")
    for _ in range(2):
        v = PersistentFile(FN, lambda: "boo", data_dir=data, home=home).get()
        assert v.created is False
        assert v.content == "foo"
    assert (data / FN).read_text() == "bar"


def test_read_dir_raises(dirs):
    home, data = dirs
    _write(home / ".cq" / FN / "inner-file", "we're in a directory!")
    for _ in range(2):
        with pytest.raises(IsDirectoryError):
            PersistentFile(FN, lambda: "boo", data_dir=data, home=home).get()


def test_regular_read(dirs):
    home, data = dirs
    _write(data / FN, "bar")
    for _ in range(2):
        v = PersistentFile(FN, lambda: "boo", data_dir=data, home=home).get()
        assert v.created is False
        assert v.content == "bar"


def test_gen(dirs):
    home, data = dirs
    v = PersistentFile(FN, lambda: "hello", data_dir=data, home=home).get()
    assert v.created is True
    assert v.content == "hello"
    assert v.path == os.path.join(str(data), FN)

    v = PersistentFile(FN, lambda: "boo", data_dir=data, home=home).get()
    assert v.created is False
    assert v.content == "hello"
    assert not (home / ".cq" / FN).exists()


def test_empty_generation_writes_nothing(dirs):
    home, data = dirs
    v = PersistentFile(FN, lambda: "", data_dir=data, home=home).get()
    assert v == Value()
    assert not (data / FN).exists()


def test_update_round_trip(dirs):
    home, data = dirs
    v = PersistentFile(FN, lambda: "hello", data_dir=data, home=home).get()
    v.update("changed")
    assert v.content == "changed"
    again = PersistentFile(FN, lambda: "boo", data_dir=data, home=home).get()
    assert again.content == "changed"