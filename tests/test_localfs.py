import os
import stat

import pytest
import requests
import responses

from cloudquery.localfs import DownloadError, LocalFs

URL = "https://downloads.example.com/cloudquery_linux.zip"


@pytest.fixture
def http():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_download_file(http, tmp_path):
    http.add(responses.GET, URL, body=b"hello", headers={"Content-Length": "5"})
    fs = LocalFs()
    test_dir = tmp_path / "test" / "cloudquery"
    fs.mkdir_all(test_dir, 0o755)
    target = test_dir / "cloudquery_linux.zip"
    fs.download_file(target, URL)
    assert target.read_bytes() == b"hello"
    assert not (test_dir / "cloudquery_linux.zip.tmp").exists()


def test_download_file_with_progress_updater(http, tmp_path):
    http.add(responses.GET, URL, body=b"hello", headers={"Content-Length": "5"})
    seen = []

    def updater(chunks, total):
        seen.append(total)
        return (chunk.upper() for chunk in chunks)

    target = tmp_path / "out.zip"
    LocalFs().download_file(target, URL, updater)
    assert seen == [5]
    assert target.read_bytes() == b"HELLO"


def test_download_file_overwrites_existing(http, tmp_path):
    http.add(responses.GET, URL, body=b"new")
    target = tmp_path / "out.zip"
    target.write_bytes(b"old content")
    LocalFs().download_file(target, URL)
    assert target.read_bytes() == b"new"


def test_download_file_bad_status(http, tmp_path):
    http.add(responses.GET, URL, status=404)
    target = tmp_path / "out.zip"
    with pytest.raises(DownloadError, match="got 404 http code instead expected 200") as info:
        LocalFs().download_file(target, URL)
    assert info.value.status_code == 404
    assert not target.exists()


def test_download_file_connection_error(http, tmp_path):
    target = tmp_path / "out.zip"
    with pytest.raises(requests.ConnectionError):
        LocalFs().download_file(target, URL)
    assert not target.exists()


def test_walk_path_tree_order(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "inner.txt").write_text("x")
    (tmp_path / "a.txt").write_text("y")
    paths = [path for path, _ in LocalFs().walk_path_tree(tmp_path)]
    assert paths == [
        str(tmp_path),
        os.path.join(str(tmp_path), "a.txt"),
        os.path.join(str(tmp_path), "b"),
        os.path.join(str(tmp_path), "b", "inner.txt"),
    ]


def test_walk_path_tree_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(LocalFs().walk_path_tree(tmp_path / "missing"))


def test_mkdir_all_existing_file_fails(tmp_path):
    target = tmp_path / "file"
    target.write_text("x")
    with pytest.raises(FileExistsError):
        LocalFs().mkdir_all(target)


def test_remove_file_and_empty_dir(tmp_path):
    fs = LocalFs()
    file_path = tmp_path / "f.txt"
    file_path.write_text("x")
    dir_path = tmp_path / "d"
    dir_path.mkdir()
    fs.remove(file_path)
    fs.remove(dir_path)
    assert sorted(os.listdir(tmp_path)) == []
    with pytest.raises(FileNotFoundError):
        fs.remove(file_path)


def test_remove_non_empty_dir_fails(tmp_path):
    (tmp_path / "d").mkdir()
    (tmp_path / "d" / "x").write_text("x")
    with pytest.raises(OSError):
        LocalFs().remove(tmp_path / "d")


def test_chmod(tmp_path):
    target = tmp_path / "f.txt"
    target.write_text("x")
    LocalFs().chmod(target, 0o600)
    assert stat.S_IMODE(os.stat(target).st_mode) == 0o600