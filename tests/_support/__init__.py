"""
Test support utilities for flow-spine tests.

Helpers that don't fit as pytest fixtures but are used across test files.
The in-memory engine lives in ``tests._support.fake_nifi``.
"""

from __future__ import annotations

from typing import Any

from flowspine.core.settings import FlowSpineSettings

SETTINGS_VALUES: dict[str, Any] = {
    "nifi_host": "nifi.test",
    "nifi_username": "admin",
    "nifi_password": "secret",
    "postgres_host": "postgres",
    "postgres_db": "inventory",
    "postgres_user": "app",
    "postgres_password": "app-secret",
    "readiness_max_attempts": 3,
    "readiness_interval": 2.0,
    "write_max_attempts": 5,
    "write_retry_delay": 1.0,
}


def make_settings(**overrides: Any) -> FlowSpineSettings:
    """Settings that ignore any .env file in the working directory."""
    return FlowSpineSettings(_env_file=None, **{**SETTINGS_VALUES, **overrides})


class FakeClock:
    """Stands in for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class SleepRecorder:
    """Stands in for ``time.sleep``; records requested delays and advances the clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self._clock = clock

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.now += seconds


def assert_dict_subset(actual: dict, expected: dict, path: str = "") -> None:
    """
    Assert that expected is a subset of actual (recursive).

    Useful for checking wire payloads where only some fields matter.
    """
    for key, expected_value in expected.items():
        current_path = f"{path}.{key}" if path else key

        assert key in actual, f"Missing key at {current_path}"
        actual_value = actual[key]

        if isinstance(expected_value, dict) and isinstance(actual_value, dict):
            assert_dict_subset(actual_value, expected_value, current_path)
        else:
            assert actual_value == expected_value, (
                f"Mismatch at {current_path}: "
                f"expected {expected_value!r}, got {actual_value!r}"
            )


class StepOrderValidator:
    """
    Validates the order in which a convergence run visited its steps.

    Usage:
        validator = StepOrderValidator(report.steps)
        validator.assert_before("dbcp", "read")
    """

    def __init__(self, steps: list[Any]) -> None:
        self.keys = [s.key for s in steps]
        self._index = {key: i for i, key in enumerate(self.keys)}

    def get_index(self, key: str) -> int:
        if key not in self._index:
            raise ValueError(f"Step '{key}' not found in run")
        return self._index[key]

    def assert_before(self, first: str, second: str) -> None:
        first_idx = self.get_index(first)
        second_idx = self.get_index(second)
        assert first_idx < second_idx, (
            f"Expected '{first}' (index {first_idx}) before "
            f"'{second}' (index {second_idx}), order: {self.keys}"
        )

    def assert_exact_order(self, expected: list[str]) -> None:
        assert self.keys == expected, (
            f"Step order mismatch:\n"
            f"  Expected: {expected}\n"
            f"  Actual:   {self.keys}"
        )
