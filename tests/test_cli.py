"""Tests for the command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from model_diagram.cli import cli

FIXTURES = Path(__file__).parent / "fixtures"
SCHEMA = str(FIXTURES / "schema.ts")


@pytest.fixture
def runner():
    return CliRunner()


def test_models_command(runner):
    result = runner.invoke(cli, ["models", SCHEMA])
    assert result.exit_code == 0, result.output
    models = json.loads(result.output)
    assert [m["id"] for m in models] == ["User", "Profile", "Post", "Tag"]
    assert models[0]["schema"][1] == {"name": "profile", "type": {"model": "Profile"}}
    assert models[0]["schema"][3] == {
        "name": "friends",
        "type": "reference",
        "referenceName": "Array",
        "arguments": [{"model": "User"}],
    }


def test_layout_command(runner):
    result = runner.invoke(cli, ["layout", SCHEMA])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["direction"] == "horizontal"
    assert [n["id"] for n in data["nodes"]] == ["User", "Profile", "Post", "Tag"]
    for node in data["nodes"]:
        assert node["x"] >= 0 and node["y"] >= 0
        assert node["width"] > 0 and node["height"] > 0
    assert len(data["edges"]) == 6


def test_layout_vertical_with_pin(runner):
    result = runner.invoke(cli, ["layout", SCHEMA, "--direction", "vertical", "--pin", "Tag=900,950"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["direction"] == "vertical"
    tag = next(n for n in data["nodes"] if n["id"] == "Tag")
    assert (tag["x"], tag["y"]) == (900, 950)


def test_layout_bad_pin(runner):
    result = runner.invoke(cli, ["layout", SCHEMA, "--pin", "Tag"])
    assert result.exit_code == 2


def test_layout_unknown_pin(runner):
    result = runner.invoke(cli, ["layout", SCHEMA, "--pin", "Nope=1,2"])
    assert result.exit_code == 1
    assert "Unknown model" in result.output


def test_missing_file(runner):
    result = runner.invoke(cli, ["models", "/nonexistent/schema.ts"])
    assert result.exit_code == 2
