"""Run configuration entity tests."""

from __future__ import annotations

import dataclasses

import pytest
from bmocha.configuration.run_configuration import ReporterKind, RunConfiguration


def test_run_configuration_is_read_only() -> None:
    configuration = RunConfiguration()

    with pytest.raises(dataclasses.FrozenInstanceError):
        configuration.bail = True  # type: ignore[misc]


def test_reporter_kind_values_match_cli_names() -> None:
    assert [kind.value for kind in ReporterKind] == ["spec", "json", "json-stream"]
