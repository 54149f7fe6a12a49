"""Tests for the error hierarchy and the structured error payloads.

Run with: pytest tests/test_errors.py -v
"""

from __future__ import annotations

import pytest

from waymark.errors import (
    ConfigurationError,
    DependencyConflictError,
    ExternalMutationFailure,
    NoEligibleOperationError,
    NotFoundError,
    RollbackIneligibleError,
    ValidationError,
    WaymarkError,
    error_response,
    get_error_code,
)


def test_to_dict_drops_empty_context():
    err = NotFoundError("Element not found", resource_type="element")

    assert err.to_dict() == {
        "type": "not_found",
        "message": "Element not found",
        "recoverable": False,
        "resource_type": "element",
    }


def test_validation_error_truncates_long_values():
    err = ValidationError("bad value", field="limit", value="x" * 500)

    assert err.context["field"] == "limit"
    assert len(err.context["value"]) == 103
    assert err.context["value"].endswith("...")


def test_validation_error_keeps_extra_context():
    err = ValidationError("bad", field="params", context={"problems": [{"field": "a"}]})

    assert err.context["problems"] == [{"field": "a"}]
    assert err.context["field"] == "params"


def test_dependency_conflict_carries_dependents():
    err = DependencyConflictError(
        "has dependents",
        element_id=7,
        element_name="Basic Wall",
        element_category="Walls",
        dependents=["Door 1", "Door 2"],
    )

    assert err.recoverable is True
    assert err.context["dependent_count"] == 2
    assert err.context["warning"] == "Deleting this element will also delete 2 dependent element(s)"


def test_external_mutation_failure_records_cause():
    err = ExternalMutationFailure(
        "write failed", operation="safe_modify", element_id=3, cause=PermissionError("locked")
    )

    assert err.context["error_type"] == "PermissionError"
    assert err.context["detail"] == "locked"


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (ValidationError("x"), -32000),
        (NotFoundError("x"), -32003),
        (RollbackIneligibleError("x"), -32060),
        (NoEligibleOperationError(), -32061),
        (DependencyConflictError("x", element_id=1), -32062),
        (ExternalMutationFailure("x"), -32063),
        (ConfigurationError("x"), -32030),
        (WaymarkError("x"), -32603),
    ],
)
def test_error_codes(exc: WaymarkError, code: int):
    assert get_error_code(exc) == code


def test_error_code_falls_back_to_parent_class():
    class StaleScopeError(NotFoundError):
        pass

    assert get_error_code(StaleScopeError("gone")) == -32003


def test_error_response_for_domain_error():
    payload = error_response(
        RollbackIneligibleError("nope", operation_id="abcd1234", reason="delete")
    ).to_dict()

    assert payload == {
        "success": False,
        "error": {
            "type": "rollback_ineligible",
            "code": -32060,
            "message": "nope",
            "recoverable": False,
            "details": {"operation_id": "abcd1234", "reason": "delete"},
        },
    }


def test_error_response_for_unexpected_exception():
    payload = error_response(KeyError("boom")).to_dict()

    assert payload["error"]["type"] == "internal"
    assert payload["error"]["code"] == -32603
    assert payload["error"]["details"] == {"error_type": "KeyError"}
