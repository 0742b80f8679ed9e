"""Workflow file discovery tests."""

import logging
import textwrap

import anyio
import pytest

from hookflow import discovery
from hookflow.discovery import discover_workflows, load_workflow_file


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))


@pytest.fixture
def workflows_root(tmp_path):
    root = tmp_path / "workflows"
    _write(
        root / "deploy" / "workflow.yml",
        """
        id: deploy
        name: Deploy
        stages:
          - build:
              job: build
              onSuccess:
                notify:
                  job: mail/send
        """,
    )
    _write(
        root / "team" / "nested" / "audit" / "workflow.yaml",
        """
        id: audit
        name: Audit
        stages:
          - check:
              job: build
        """,
    )
    _write(root / "broken" / "workflow.yml", "id: [unclosed\n")
    _write(root / "invalid" / "workflow.yml", "name: no id here\n")
    _write(root / "workflow.yml", "id: ignored-at-root\n")
    _write(root / "README.md", "not a workflow")
    return root


@pytest.mark.asyncio
async def test_discovers_workflows_recursively(workflows_root):
    workflows = await discover_workflows(workflows_root)

    assert sorted(workflow.id for workflow in workflows) == ["audit", "deploy"]


@pytest.mark.asyncio
async def test_malformed_files_are_skipped_with_warning(workflows_root, caplog):
    with caplog.at_level(logging.WARNING, logger="hookflow.discovery"):
        await discover_workflows(workflows_root)

    assert "broken" in caplog.text
    assert "invalid" in caplog.text


@pytest.mark.asyncio
async def test_directory_with_workflow_file_is_not_searched_further(tmp_path):
    root = tmp_path / "workflows"
    _write(root / "outer" / "workflow.yml", "id: outer\n")
    _write(root / "outer" / "inner" / "workflow.yml", "id: inner\n")

    workflows = await discover_workflows(root)

    assert [workflow.id for workflow in workflows] == ["outer"]


@pytest.mark.asyncio
async def test_stage_graph_is_materialised(workflows_root):
    workflows = await discover_workflows(workflows_root)
    deploy = next(workflow for workflow in workflows if workflow.id == "deploy")

    build = deploy.stages[0]
    assert build.on_success.job == "mail/send"
    assert deploy.source.name == "workflow.yml"


@pytest.mark.asyncio
async def test_missing_root_yields_nothing(tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="hookflow.discovery"):
        workflows = await discover_workflows(tmp_path / "absent")

    assert workflows == []
    assert "not found" in caplog.text


@pytest.mark.asyncio
async def test_load_workflow_file_rejects_non_mapping(tmp_path):
    path = tmp_path / "workflow.yml"
    path.write_text("- just\n- a list\n")

    assert await load_workflow_file(path) is None


@pytest.mark.asyncio
async def test_unreadable_directory_is_skipped(workflows_root, monkeypatch, caplog):
    _write(workflows_root / "locked" / "workflow.yml", "id: locked\n")
    workflow_file = discovery._workflow_file

    async def _workflow_file(directory):
        if directory.name == "locked":
            raise PermissionError(13, "Permission denied", str(directory))
        return await workflow_file(directory)

    monkeypatch.setattr(discovery, "_workflow_file", _workflow_file)

    with caplog.at_level(logging.WARNING, logger="hookflow.discovery"):
        workflows = await discover_workflows(workflows_root)

    assert sorted(workflow.id for workflow in workflows) == ["audit", "deploy"]
    assert "Skipping workflow directory" in caplog.text
    assert "locked" in caplog.text


@pytest.mark.asyncio
async def test_unlistable_subdirectory_is_skipped(workflows_root, monkeypatch):
    iterdir = anyio.Path.iterdir

    def _iterdir(self):
        if self.name == "team":
            raise PermissionError(13, "Permission denied", str(self))
        return iterdir(self)

    monkeypatch.setattr(anyio.Path, "iterdir", _iterdir)

    workflows = await discover_workflows(workflows_root)

    assert [workflow.id for workflow in workflows] == ["deploy"]
