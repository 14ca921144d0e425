"""Tests for structured_output/cli.py — typer commands via CliRunner."""

import json
import logging

import pytest
import yaml
from typer.testing import CliRunner

from structured_output.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI callback reconfigures root logging; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def reply_file(tmp_path):
    def write(content, name="reply.json"):
        path = tmp_path / name
        path.write_text(content if isinstance(content, str) else json.dumps(content), encoding="utf-8")
        return str(path)

    return write


class TestSchema:
    def test_raw(self):
        result = runner.invoke(app, ["schema", "sample_models:Step"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["name"] == "Step"
        assert data["required"] == ["explanation", "output"]

    def test_response_format(self):
        result = runner.invoke(app, ["schema", "sample_models:Step", "--format", "response-format"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["type"] == "json_schema"

    def test_openai(self):
        result = runner.invoke(app, ["schema", "sample_models:AddNumbers", "-f", "openai"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["function"]["name"] == "AddNumbers"

    def test_anthropic(self):
        result = runner.invoke(app, ["schema", "sample_models:AddNumbers", "-f", "anthropic"])
        assert result.exit_code == 0, result.output
        assert "input_schema" in json.loads(result.output)

    def test_unknown_format(self):
        result = runner.invoke(app, ["schema", "sample_models:Step", "-f", "xml"])
        assert result.exit_code == 2
        assert "Unknown format" in result.output

    def test_bad_target(self):
        result = runner.invoke(app, ["schema", "no_colon_here"])
        assert result.exit_code == 1
        assert "Cannot load" in result.output

    def test_missing_attribute(self):
        result = runner.invoke(app, ["schema", "sample_models:Nope"])
        assert result.exit_code == 1

    def test_not_structured(self):
        result = runner.invoke(app, ["schema", "sample_models:TemperatureUnit"])
        assert result.exit_code == 1
        assert "not a structured type" in result.output


class TestValidate:
    def test_valid(self, reply_file):
        path = reply_file({"explanation": "e", "output": "o"})
        result = runner.invoke(app, ["validate", "sample_models:Step", path])
        assert result.exit_code == 0, result.output
        assert "Valid Step" in result.output

    def test_invalid_lists_violations(self, reply_file):
        path = reply_file({"explanation": 1})
        result = runner.invoke(app, ["validate", "sample_models:Step", path])
        assert result.exit_code == 1
        assert "violation" in result.output
        assert "output" in result.output

    def test_repair_flag(self, reply_file):
        path = reply_file('```json\n{"explanation": "e", "output": "o"}\n```')
        assert runner.invoke(app, ["validate", "sample_models:Step", path]).exit_code == 1
        result = runner.invoke(app, ["validate", "sample_models:Step", path, "--repair"])
        assert result.exit_code == 0, result.output
        assert "strip_code_fence" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", "sample_models:Step", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "File not found" in result.output


class TestHydrate:
    def test_prints_fields(self, reply_file):
        path = reply_file('{"steps":[{"explanation":"e1","output":"o1"}], "final_answer":"x=5"}')
        result = runner.invoke(app, ["hydrate", "sample_models:MathReasoning", path])
        assert result.exit_code == 0, result.output
        assert "MathReasoning" in result.output
        body = result.output.split("\n", 1)[1]
        assert json.loads(body) == {
            "final_answer": "x=5",
            "steps": [{"explanation": "e1", "output": "o1"}],
        }

    def test_unparsable_reply(self, reply_file):
        path = reply_file("not-json")
        result = runner.invoke(app, ["hydrate", "sample_models:Step", path])
        assert result.exit_code == 1
        assert "Could not hydrate" in result.output

    def test_hydration_error(self, reply_file):
        path = reply_file({"explanation": 1, "output": "o"})
        result = runner.invoke(app, ["hydrate", "sample_models:Step", path])
        assert result.exit_code == 1
        assert "Step.explanation" in result.output


class TestTypes:
    def test_lists_module_types(self):
        result = runner.invoke(app, ["types", "sample_models"])
        assert result.exit_code == 0, result.output
        for name in ("Step", "UserProfile", "AddNumbers"):
            assert name in result.output
        assert "tool" in result.output

    def test_module_without_types(self):
        result = runner.invoke(app, ["types", "json"])
        assert result.exit_code == 0
        assert "No structured types" in result.output

    def test_unknown_module(self):
        result = runner.invoke(app, ["types", "definitely_not_a_module_xyz"])
        assert result.exit_code == 1


class TestScaffold:
    def test_prints_yaml(self, reply_file):
        path = reply_file({"city": "Oslo", "population": 700000})
        result = runner.invoke(app, ["scaffold", path, "City"])
        assert result.exit_code == 0, result.output
        fragment = yaml.safe_load(result.output)
        assert fragment["name"] == "City"
        assert fragment["properties"] == {"city": "string", "population": "integer"}

    def test_writes_file(self, reply_file, tmp_path):
        path = reply_file({"city": "Oslo"})
        out = tmp_path / "city.yaml"
        result = runner.invoke(app, ["scaffold", path, "City", "--out", str(out)])
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(out.read_text(encoding="utf-8"))["required"] == ["city"]

    def test_rejects_non_object(self, reply_file):
        path = reply_file([1, 2])
        result = runner.invoke(app, ["scaffold", path, "City"])
        assert result.exit_code == 1


class TestVersion:
    def test_version(self):
        from structured_output import __version__

        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output
