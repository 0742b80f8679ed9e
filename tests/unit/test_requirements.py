"""Requirement evaluation tests."""

import logging

import pytest

from hookflow.contracts import RequirementSet, WorkflowDefinition
from hookflow.requirements import (
    RequirementError,
    check_requirements,
    evaluate,
    resolve_key_path,
)


def _workflow(*rules, name="deploy"):
    return WorkflowDefinition(
        id="wf", name=name, requirements=RequirementSet(data=list(rules))
    )


def test_no_requirements_passes():
    workflow = WorkflowDefinition(id="wf", name="plain")
    assert evaluate(workflow, None).ok
    assert evaluate(workflow, {"anything": 1}).ok


def test_requirements_without_rules_pass_even_without_data():
    workflow = WorkflowDefinition(id="wf", requirements=RequirementSet())
    assert evaluate(workflow, None).ok


def test_scalar_equality_on_nested_key():
    workflow = _workflow({"user.role": "admin"})
    assert evaluate(workflow, {"user": {"role": "admin"}}).ok


def test_scalar_mismatch_reports_expected_and_given():
    workflow = _workflow({"user.role": "guest"})
    result = evaluate(workflow, {"user": {"role": "admin"}})

    assert not result.ok
    assert "admin" in result.reason
    assert "guest" in result.reason
    assert result.reason.startswith("[deploy] Requirements not completed")


def test_membership_rule():
    workflow = _workflow({"env": ["prod", "staging"]})
    assert evaluate(workflow, {"env": "staging"}).ok

    result = evaluate(workflow, {"env": "dev"})
    assert not result.ok
    assert "Require prod,staging ; Give dev" in result.reason


def test_missing_data_fails_regardless_of_rules():
    workflow = _workflow({"whatever": {"nested": "object"}})
    result = evaluate(workflow, None)
    assert not result.ok
    assert result.reason == "[deploy] Requirements not completed : no data given"


def test_unknown_rule_type_passes_with_warning(caplog):
    workflow = _workflow({"user": {"role": "admin"}})
    with caplog.at_level(logging.WARNING, logger="hookflow.requirements"):
        result = evaluate(workflow, {"user": {"role": "guest"}})

    assert result.ok
    assert "Type not recognized : dict" in caplog.text


def test_null_expected_value_is_skipped():
    workflow = _workflow({"env": None})
    assert evaluate(workflow, {"env": "prod"}).ok


def test_bool_does_not_match_int():
    workflow = _workflow({"flag": True})
    assert evaluate(workflow, {"flag": True}).ok
    assert not evaluate(workflow, {"flag": 1}).ok


def test_numbers_compare_by_value():
    workflow = _workflow({"count": 3})
    assert evaluate(workflow, {"count": 3.0}).ok
    assert not evaluate(workflow, {"count": "3"}).ok


def test_every_rule_must_pass():
    workflow = _workflow({"env": "prod"}, {"user.role": "admin"})
    assert evaluate(workflow, {"env": "prod", "user": {"role": "admin"}}).ok
    assert not evaluate(workflow, {"env": "prod", "user": {"role": "guest"}}).ok


def test_check_requirements_raises_with_reason():
    workflow = _workflow({"env": "prod"})
    check_requirements(workflow, {"env": "prod"})

    with pytest.raises(RequirementError) as exc:
        check_requirements(workflow, {"env": "dev"})
    assert "Give dev" in exc.value.reason


class TestResolveKeyPath:
    """Key path traversal keeps whatever it reached when a segment is absent."""

    def test_full_path(self):
        assert resolve_key_path("a.b.c", {"a": {"b": {"c": 1}}}) == 1

    def test_missing_leaf_returns_partial_object(self):
        data = {"user": {"name": "ada"}}
        assert resolve_key_path("user.role", data) == {"name": "ada"}

    def test_missing_first_segment_continues_from_root(self):
        data = {"role": "admin"}
        assert resolve_key_path("user.role", data) == "admin"

    def test_no_segment_found_returns_whole_data(self):
        data = {"x": 1}
        assert resolve_key_path("y", data) is data

    def test_scalar_stops_descent(self):
        assert resolve_key_path("env.name", {"env": "prod"}) == "prod"

    def test_list_index_segment(self):
        assert resolve_key_path("items.1", {"items": ["a", "b"]}) == "b"

    def test_partial_object_compared_against_scalar_fails(self):
        workflow = _workflow({"user.role": "admin"})
        result = evaluate(workflow, {"user": {"name": "ada"}})
        assert not result.ok
        assert '{"name": "ada"}' in result.reason
