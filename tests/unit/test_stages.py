"""Stage graph builder tests."""

import pytest

from hookflow.stages import (
    WorkflowDefinitionError,
    build_stages,
    build_workflow,
    iter_stages,
)

DOCUMENT = {
    "id": "deploy",
    "name": "Deploy",
    "description": "Build then notify",
    "requirements": {"data": [{"env": ["prod", "staging"]}]},
    "stages": [
        {
            "build": {
                "id": "build-1",
                "job": "build",
                "data": {"target": "web"},
                "priority": 2,
                "repeat": {"every": 60000},
                "onSuccess": {"notify": {"job": "mail/send"}},
                "onFail": {
                    "rollback": {
                        "job": "rollback",
                        "onSuccess": {"name": "alert", "job": "mail/send"},
                    }
                },
            }
        },
        {"name": "lint", "job": "lint"},
    ],
}


def test_build_workflow_metadata():
    workflow = build_workflow(DOCUMENT)

    assert workflow.id == "deploy"
    assert workflow.name == "Deploy"
    assert workflow.description == "Build then notify"
    assert workflow.requirements.data == [{"env": ["prod", "staging"]}]
    assert [stage.name for stage in workflow.stages] == ["build", "lint"]


def test_stage_fields_and_children():
    build, lint = build_workflow(DOCUMENT).stages

    assert build.id == "build-1"
    assert build.job == "build"
    assert build.data == {"target": "web"}
    assert build.priority == 2
    assert build.repeat == {"every": 60000}
    assert build.on_success.name == "notify"
    assert build.on_success.job == "mail/send"
    assert build.on_fail.name == "rollback"
    assert build.on_fail.on_success.name == "alert"
    assert not lint.has_children


def test_default_ids_follow_stage_path():
    build, lint = build_workflow(DOCUMENT).stages

    assert lint.id == "deploy:lint"
    assert build.on_success.id == "deploy:build.onSuccess:notify"
    assert build.on_fail.on_success.id == "deploy:build.onFail:rollback.onSuccess:alert"


def test_single_rule_mapping_is_wrapped():
    workflow = build_workflow(
        {"id": "x", "requirements": {"data": {"env": "prod"}}, "stages": []}
    )
    assert workflow.requirements.data == [{"env": "prod"}]


def test_stage_without_job_is_rejected():
    with pytest.raises(WorkflowDefinitionError, match="has no job"):
        build_stages([{"broken": {"data": {}}}], "wf")


def test_stages_must_be_a_list():
    with pytest.raises(WorkflowDefinitionError):
        build_stages({"build": {"job": "build"}}, "wf")


def test_workflow_requires_id():
    with pytest.raises(WorkflowDefinitionError, match="no id"):
        build_workflow({"name": "nameless", "stages": []})


def test_non_mapping_document_is_rejected():
    with pytest.raises(WorkflowDefinitionError):
        build_workflow(["not", "a", "mapping"])


def test_missing_stages_builds_empty_workflow():
    assert build_workflow({"id": 7}).stages == []
    assert build_workflow({"id": 7}).id == "7"


def test_iter_stages_walks_tree_depth_first():
    workflow = build_workflow(DOCUMENT)
    walked = [(depth, stage.name) for depth, stage in iter_stages(workflow.stages)]
    assert walked == [
        (0, "build"),
        (1, "notify"),
        (1, "rollback"),
        (2, "alert"),
        (0, "lint"),
    ]
