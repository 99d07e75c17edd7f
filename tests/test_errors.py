# tests/test_errors.py
"""Tests for bdf_driver.errors."""

from __future__ import annotations

import pytest

from bdf_driver import errors


@pytest.mark.parametrize(
    ("cls", "builtin", "code"),
    [
        (errors.AllocationError, MemoryError, errors.ErrorCode.ALLOCATION),
        (errors.InitializationError, RuntimeError, errors.ErrorCode.INITIALIZATION),
        (errors.ConfigurationError, ValueError, errors.ErrorCode.CONFIGURATION),
        (errors.IntegrationError, RuntimeError, errors.ErrorCode.INTEGRATION),
        (
            errors.ResourceReleaseError,
            RuntimeError,
            errors.ErrorCode.RESOURCE_RELEASE,
        ),
    ],
)
def test_taxonomy_classes(
    cls: type[errors.BdfDriverError],
    builtin: type[Exception],
    code: errors.ErrorCode,
) -> None:
    exc = cls("something failed")
    assert isinstance(exc, errors.BdfDriverError)
    assert isinstance(exc, builtin)
    assert exc.code is code
    assert exc.step is None
    assert str(exc) == "something failed"


def test_explicit_code_overrides_default() -> None:
    exc = errors.IntegrationError("x", code=errors.ErrorCode.CONFIGURATION)
    assert exc.code is errors.ErrorCode.CONFIGURATION


def test_step_label_prefixes_message() -> None:
    exc = errors.ConfigurationError("rtol must be non-negative", step="set tolerances")
    assert str(exc) == "[set tolerances] rtol must be non-negative"


def test_with_step_keeps_an_existing_label() -> None:
    exc = errors.AllocationError("no memory")
    assert errors.with_step(exc, "create dense matrix") is exc
    assert exc.step == "create dense matrix"

    errors.with_step(exc, "integrate")
    assert exc.step == "create dense matrix"


def test_codes_are_strings() -> None:
    assert errors.ErrorCode.INTEGRATION == "integration"
