"""Tests for the pemchain command line."""

import json

import pydantic
import pytest

from pemchain.cli import main, parse_args, settings_from_args
from pemchain.settings import Settings


class TestArguments:

    def test_defaults(self):
        settings = settings_from_args(parse_args([]))

        assert settings == Settings()

    def test_discovery_flags(self):
        settings = settings_from_args(parse_args(["-H", "-r", "-S", "-U", "-X", "--no-sort", "dir"]))

        assert settings.hidden
        assert settings.recursive
        assert settings.follow_symlinks
        assert settings.unlimited
        assert settings.cross_filesystems
        assert not settings.sort_paths

    def test_oneline_flags(self):
        assert settings_from_args(parse_args(["-l"])).output_format == "oneline"
        assert settings_from_args(parse_args(["-l"])).header

        settings = settings_from_args(parse_args(["-L"]))
        assert settings.output_format == "oneline"
        assert not settings.header

    def test_output_options_are_exclusive(self):
        with pytest.raises(SystemExit) as excinfo:
            parse_args(["-l", "-o", "json"])
        assert excinfo.value.code == 2

    def test_bad_output_format(self):
        with pytest.raises(SystemExit):
            parse_args(["-o", "xml"])

    def test_settings_validate_output_format(self):
        with pytest.raises(pydantic.ValidationError):
            Settings(output_format="xml")

    def test_size_options(self):
        settings = settings_from_args(parse_args(["--max-file-size", "4096", "--max-paths", "0"]))

        assert settings.max_file_size == 4096
        assert settings.max_paths == 0
        assert settings_from_args(parse_args(["-m", "10"])).max_file_size == 10

    @pytest.mark.parametrize("option", ["--max-paths", "--max-file-size", "-m"])
    def test_negative_sizes_are_usage_errors(self, option):
        with pytest.raises(SystemExit) as excinfo:
            parse_args([option, "-5"])
        assert excinfo.value.code == 2

    def test_settings_reject_negative_sizes(self):
        with pytest.raises(pydantic.ValidationError):
            Settings(max_paths=-5)
        with pytest.raises(pydantic.ValidationError):
            Settings(max_file_size=-1)


class TestMain:

    def test_tree_output(self, pki, capsys):
        assert main([str(pki["dir"])]) == 0

        out = capsys.readouterr().out
        assert out.startswith("a.example.com\n")
        assert f"> {pki['root.crt']} (self-signed)" in out

    def test_oneline_without_header(self, pki, capsys):
        assert main(["-L", str(pki["dir"])]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("a.example.com ")

    def test_json_output(self, pki, capsys):
        assert main(["-o", "json", str(pki["dir"])]) == 0

        chains = json.loads(capsys.readouterr().out)
        assert [chain["key"] for chain in chains] == [pki["A.key"]]

    def test_nothing_found(self, tmp_path, capsys):
        assert main(["-o", "json", str(tmp_path)]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_missing_path_exits_non_zero_without_output(self, pki, tmp_path, capsys):
        assert main([str(pki["dir"]), str(tmp_path / "missing")]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "missing" in captured.err

    def test_missing_path_after_a_full_directory(self, pki, tmp_path, capsys):
        assert main(["--max-paths", "1", str(pki["dir"]), str(tmp_path / "missing.crt")]) == 1
        assert capsys.readouterr().out == ""
