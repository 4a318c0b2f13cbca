"""Tests for the command line interface."""

import json

import pytest
from click.testing import CliRunner

from draftcraft.cli import cli
from draftcraft.io.project_loader import ProjectLoader, ProjectStore
from conftest import FakeClient


@pytest.fixture
def project_file(tmp_path, project):
    path = tmp_path / "project.json"
    ProjectLoader().save_project(project, path)
    return path


def invoke(args, config, client=None):
    runner = CliRunner()
    return runner.invoke(cli, [str(a) for a in args], obj={"config": config, "client": client or FakeClient()})


def test_history_list_seeds_initial_state(project_file, config):
    """Test listing a chapter with no stored history."""
    result = invoke(["history", "list", project_file, "c1"], config)
    assert result.exit_code == 0
    assert "1 entries" in result.output
    assert "initial state" in result.output
    assert (project_file.parent / "history" / "chapterHistory_p1_c1.json").exists()


def test_history_snapshot_and_diff(project_file, config):
    """Test a manual snapshot followed by a diff against a changed draft."""
    result = invoke(["history", "snapshot", project_file, "c1", "--label", "checkpoint"], config)
    assert result.exit_code == 0
    assert "(checkpoint)" in result.output

    result = invoke(["history", "diff", project_file, "c1"], config)
    assert "No differences" in result.output

    data = json.loads(project_file.read_text(encoding="utf-8"))
    data["chapters"][0]["draft"] = "Changed."
    project_file.write_text(json.dumps(data), encoding="utf-8")
    result = invoke(["history", "diff", project_file, "c1"], config)
    assert result.exit_code == 0
    assert "- Draft of chapter 1." in result.output
    assert "+ Changed." in result.output


def test_history_restore_and_delete(project_file, config, tmp_path):
    """Test restoring and deleting entries by id."""
    invoke(["history", "list", project_file, "c1"], config)
    entries = json.loads((tmp_path / "history" / "chapterHistory_p1_c1.json").read_text(encoding="utf-8"))
    initial_id = entries[0]["id"]

    data = json.loads(project_file.read_text(encoding="utf-8"))
    data["chapters"][0]["draft"] = "Changed."
    project_file.write_text(json.dumps(data), encoding="utf-8")

    result = invoke(["history", "restore", project_file, "c1", initial_id], config)
    assert result.exit_code == 0
    assert ProjectStore(project_file).load().chapters[0].draft == "Draft of chapter 1."

    result = invoke(["history", "delete", project_file, "c1", initial_id, "--yes"], config)
    assert result.exit_code == 0
    result = invoke(["history", "delete", project_file, "c1", initial_id, "--yes"], config)
    assert result.exit_code == 1


def test_ai_suggest_and_apply(project_file, config):
    """Test requesting suggestions and applying one."""
    response = json.dumps({"suggestions": [
        {"title": "Short", "body": "Sketch"},
        {"title": "Long", "body": "Rough sketch"},
    ]})
    result = invoke(
        ["ai", "suggest", project_file, "c1", "--start", "0", "--end", "5", "--apply", "2"],
        config,
        FakeClient([response]),
    )
    assert result.exit_code == 0
    assert "1. Short" in result.output
    assert "Applied suggestion 2" in result.output
    assert ProjectStore(project_file).load().chapters[0].draft == "Rough sketch of chapter 1."


def test_ai_suggest_requires_configuration(project_file, config):
    """Test the error path for a missing API key."""
    result = invoke(
        ["ai", "suggest", project_file, "c1", "--start", "0", "--end", "5"],
        config,
        FakeClient(configured=False),
    )
    assert result.exit_code == 1
    assert "AI settings are required" in result.output


def test_ai_draft_continue(project_file, config):
    """Test continuing a chapter draft from the command line."""
    result = invoke(
        ["ai", "draft", project_file, "c1", "--action", "continue"],
        config,
        FakeClient(["The tide turned."]),
    )
    assert result.exit_code == 0
    assert "Running continue on chapter c1" in result.output
    draft = ProjectStore(project_file).load().chapters[0].draft
    assert draft == "Draft of chapter 1.\n\nThe tide turned."

    entries = json.loads((project_file.parent / "history" / "chapterHistory_p1_c1.json").read_text(encoding="utf-8"))
    assert [e["label"] for e in entries] == ["after continue", "before continue", "initial state"]


def test_ai_draft_rejects_empty_draft(project_file, config):
    """Test that rework actions fail cleanly on an empty chapter."""
    data = json.loads(project_file.read_text(encoding="utf-8"))
    data["chapters"][0]["draft"] = ""
    project_file.write_text(json.dumps(data), encoding="utf-8")
    result = invoke(["ai", "draft", project_file, "c1", "--action", "shorten"], config)
    assert result.exit_code == 1
    assert "Error running shorten" in result.output


def test_ai_generate_all(project_file, config):
    """Test drafting every chapter."""
    response = "=== Chapter 1: Part 1 ===\nThe storm arrived.\n=== Chapter 2: Part 2 ===\nMara found the key.\n"
    result = invoke(["ai", "generate-all", project_file, "--yes"], config, FakeClient([response]))
    assert result.exit_code == 0
    assert "Updated 2 of 5 chapters" in result.output
    chapters = ProjectStore(project_file).load().chapters
    assert chapters[1].draft == "Mara found the key."
    assert chapters[2].draft == "Draft of chapter 3."


def test_ai_generate_all_declined(project_file, config):
    """Test that declining sends nothing."""
    client = FakeClient(["unused"])
    result = CliRunner().invoke(
        cli,
        ["ai", "generate-all", str(project_file)],
        obj={"config": config, "client": client},
        input="n\n",
    )
    assert result.exit_code == 0
    assert "Nothing generated" in result.output
    assert client.calls == []


def test_plot_commands(project_file, config):
    """Test switching structure and setting a field."""
    result = invoke(["plot", "set-structure", project_file, "three-act"], config)
    assert result.exit_code == 0
    assert "Three-act structure" in result.output

    result = invoke(["plot", "set-field", project_file, "act1", "The keeper vanishes"], config)
    assert result.exit_code == 0
    assert "(1/3 fields)" in result.output

    result = invoke(["plot", "show", project_file], config)
    assert "Three-act structure (1/3 fields)" in result.output
    assert "Act 1 - Setup: The keeper vanishes" in result.output

    result = invoke(["plot", "set-field", project_file, "ki", "nope"], config)
    assert result.exit_code == 1
