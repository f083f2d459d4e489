"""Tests for flightplan error classes.

Tests cover:
- Error hierarchy
- CommandError carrying the failed result
"""

import pytest

from flightplan.errors import (
    CommandError,
    ConfigError,
    FlightAbortedError,
    FlightplanError,
    PlanAbortedError,
)
from flightplan.transport.base import CommandResult


class TestFlightplanError:
    """Tests for base FlightplanError."""

    def test_is_exception(self):
        assert issubclass(FlightplanError, Exception)

    def test_has_message(self):
        error = FlightplanError("my message")
        assert str(error) == "my message"


class TestErrorHierarchy:
    """All flightplan errors can be caught as FlightplanError."""

    @pytest.mark.parametrize(
        "error_class",
        [ConfigError, PlanAbortedError, CommandError, FlightAbortedError],
    )
    def test_subclasses_flightplan_error(self, error_class):
        assert issubclass(error_class, FlightplanError)
        with pytest.raises(FlightplanError):
            raise error_class("boom")

    def test_config_error_is_not_command_error(self):
        assert not isinstance(ConfigError("x"), CommandError)


class TestCommandError:
    """Tests for CommandError."""

    def test_carries_result(self):
        result = CommandResult(command="false", code=1)
        error = CommandError("'false' failed with exit code 1", result)
        assert error.result is result
        assert error.result.code == 1
        assert str(error) == "'false' failed with exit code 1"

    def test_result_defaults_to_none(self):
        assert CommandError("spawn failed").result is None
