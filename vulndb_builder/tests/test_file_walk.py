"""Tests for the shared cache directory walker."""
import os
from pathlib import Path

import pytest

from ingestion.exceptions import DecodeError, WalkError
from ingestion.file_walk import file_walk


def test_walks_matching_files_in_sorted_order(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "b" / "2.json").write_text("{}")
    (tmp_path / "a" / "1.json").write_text("{}")
    (tmp_path / "a" / "notes.txt").write_text("skip")
    seen = []

    file_walk(tmp_path, [".json"], lambda f, path: seen.append((path, f.read())))

    assert seen == [("a/1.json", b"{}"), ("b/2.json", b"{}")]


def test_paths_relative_to_base(tmp_path):
    root = tmp_path / "amazon"
    (root / "2").mkdir(parents=True)
    (root / "2" / "x.json").write_text("{}")
    seen = []

    file_walk(root, [".json"], lambda f, path: seen.append(path), relative_to=tmp_path)

    assert seen == ["amazon/2/x.json"]


def test_missing_root(tmp_path):
    with pytest.raises(WalkError, match="error in file walk: "):
        file_walk(tmp_path / "missing", [".json"], lambda f, path: None)


def test_callback_errors_propagate(tmp_path):
    (tmp_path / "x.json").write_text("{}")

    def fail(f, path):
        raise DecodeError("bad file")

    with pytest.raises(DecodeError, match="bad file"):
        file_walk(tmp_path, [".json"], fail)


def test_unreadable_subdirectory(tmp_path, monkeypatch):
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    (tmp_path / "a" / "1.json").write_text("{}")
    (tmp_path / "b" / "2.json").write_text("{}")
    real_scandir = os.scandir

    def scandir(path):
        if Path(path) == tmp_path / "b":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir)
    seen = []

    with pytest.raises(WalkError, match="error in file walk: .*Permission denied"):
        file_walk(tmp_path, [".json"], lambda f, path: seen.append(path))

    assert seen == []
