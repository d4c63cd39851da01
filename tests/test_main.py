"""Tests for the command line entry point."""

import json

import pytest

from makemcp.main import build_parser, run
from makemcp.sources import default_registry


BASE_URL = "http://api.example/v1"


class TestParser:
    def test_subcommand_per_source_and_load(self):
        parser = build_parser(default_registry)

        args = parser.parse_args(["openapi", "-s", "api.json", "-b", BASE_URL, "-t", "http"])
        assert args.command == "openapi"
        assert args.transport == "http"

        args = parser.parse_args(["load", "app.json"])
        assert args.command == "load"
        assert args.paths == ["app.json"]

    def test_rejects_unknown_transport(self):
        with pytest.raises(SystemExit) as excinfo:
            build_parser(default_registry).parse_args(["openapi", "-t", "grpc"])

        assert excinfo.value.code == 2


class TestRun:
    def test_config_only_writes_file_and_exits(self, spec_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        code = run(["openapi", "--specs", spec_file, "--base-url", BASE_URL, "--co", "--dev-mode"])

        assert code == 0
        data = json.loads((tmp_path / "Users API_makemcp.json").read_text())
        assert [tool["name"] for tool in data["tools"]] == ["getuser", "delete_user", "createuser"]
        assert data["config"]["configOnly"] is True

    def test_custom_file_flag(self, spec_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        code = run(
            ["openapi", "-s", spec_file, "-b", BASE_URL, "--co", "--dev-mode", "-f", "users"]
        )

        assert code == 0
        assert (tmp_path / "users.json").exists()

    def test_missing_specs_is_reported(self, capsys):
        code = run(["openapi", "--base-url", BASE_URL])

        assert code == 1
        assert "Error: specs parameter is required" in capsys.readouterr().err

    def test_unreachable_spec_is_reported(self, tmp_path, capsys, monkeypatch):
        monkeypatch.chdir(tmp_path)

        code = run(["openapi", "-s", str(tmp_path / "missing.json"), "-b", BASE_URL, "--co"])

        assert code == 1
        assert "failed to read OpenAPI specification" in capsys.readouterr().err

    @pytest.mark.parametrize("paths", [[], ["a.json", "b.json"]])
    def test_load_requires_one_path(self, paths, capsys):
        code = run(["load", *paths])

        assert code == 1
        assert (
            "Error: load command requires exactly one argument: the path to the config file"
            in capsys.readouterr().err
        )

    def test_load_missing_file(self, tmp_path, capsys):
        code = run(["load", str(tmp_path / "missing.json")])

        assert code == 1
        assert "Error: failed to load configuration: failed to read configuration file" in (
            capsys.readouterr().err
        )
