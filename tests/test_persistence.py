"""
Tests for CMakeCache parsing and the generated .env file.
"""

from pathlib import Path

from picobuild.core.persistence.cmake_cache import nested_caches, parse_cache, read_cache
from picobuild.core.persistence.env_file import render_env, write_env_file


class TestCmakeCache:
    def test_parse(self):
        text = (
            "# This is the CMakeCache file.\n"
            "// Path to the SDK\n"
            "PICO_SDK_PATH:PATH=/home/dev/pico-sdk\n"
            "CMAKE_C_FLAGS:STRING=-O2 -DX=1\n"
            "\n"
            "EMPTY:STRING=\n"
            "garbage line\n"
        )
        entries = parse_cache(text)
        assert entries["PICO_SDK_PATH"] == "/home/dev/pico-sdk"
        assert entries["CMAKE_C_FLAGS"] == "-O2 -DX=1"
        assert entries["EMPTY"] == ""
        assert len(entries) == 3

    def test_read_missing(self, tmp_path: Path):
        assert read_cache(tmp_path / "CMakeCache.txt") is None

    def test_nested_excludes_top(self, tmp_path: Path):
        (tmp_path / "CMakeCache.txt").write_text("A:STRING=1\n")
        (tmp_path / "x" / "y").mkdir(parents=True)
        (tmp_path / "x" / "y" / "CMakeCache.txt").write_text("A:STRING=2\n")
        assert nested_caches(tmp_path) == [tmp_path / "x" / "y" / "CMakeCache.txt"]

    def test_nested_depth_limit(self, tmp_path: Path):
        deep = tmp_path / "a" / "b"
        deep.mkdir(parents=True)
        (deep / "CMakeCache.txt").write_text("")
        assert nested_caches(tmp_path, max_depth=1) == []
        assert nested_caches(tmp_path, max_depth=2) == [deep / "CMakeCache.txt"]


class TestEnvFile:
    def test_render_quotes(self, make_settings, tmp_path):
        s = make_settings(sdk_path=str(tmp_path / "my sdk"))
        text = render_env(s)
        assert text.startswith("# Auto-generated by picobuild\n")
        assert f"export PICO_SDK_PATH='{tmp_path / 'my sdk'}'" in text
        assert "export PICO_BOARD=pico2\n" in text

    def test_written_once(self, make_settings, repo):
        s = make_settings()
        assert write_env_file(repo, s) is True
        first = (repo / ".env").read_text()
        assert "PICO_EXTRAS_PATH" in first

        other = make_settings(board="pico_w")
        assert write_env_file(repo, other) is False
        assert (repo / ".env").read_text() == first

    def test_existing_user_file_untouched(self, make_settings, repo):
        (repo / ".env").write_text("MINE=1\n")
        assert write_env_file(repo, make_settings()) is False
        assert (repo / ".env").read_text() == "MINE=1\n"
