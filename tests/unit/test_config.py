"""Tests for locating NetHook dump directories."""

from pathlib import Path

import pytest

from nethook_analyzer import config


def test_latest_session_is_lexically_last(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    nethook = tmp_path / "steam" / "nethook"
    for name in ("2024_01_01_10_00_00", "2024_03_05_09_30_00", "2023_12_31_23_59_59"):
        (nethook / name).mkdir(parents=True)
    monkeypatch.setattr(config, "STEAM_DIRECTORIES", [tmp_path / "nope", tmp_path / "steam"])

    assert config.resolve_nethook_directory() == nethook
    assert config.resolve_latest_dump_directory() == nethook / "2024_03_05_09_30_00"


def test_nethook_without_sessions_is_used_directly(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    nethook = tmp_path / "nethook"
    nethook.mkdir()
    (nethook / "1_in_766.bin").write_bytes(b"")
    monkeypatch.setattr(config, "STEAM_DIRECTORIES", [tmp_path])

    assert config.resolve_latest_dump_directory() == nethook


def test_no_steam_install(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "STEAM_DIRECTORIES", [tmp_path / "missing"])
    assert config.resolve_nethook_directory() is None
    assert config.resolve_latest_dump_directory() is None
