"""Unit tests for custom exception hierarchy."""

import pytest

from ghspace.utils.exceptions import (
    GHSpaceError,
    ValidationError,
    ComputationError,
    InvariantViolationError,
    ConfigurationError,
    ConvergenceError,
    ToleranceNotMetError,
)


class TestGHSpaceError:
    """Test base GHSpaceError class."""

    def test_basic_creation(self):
        """Test basic exception creation."""
        error = GHSpaceError("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.context == {}
        assert error.recoverable is False

    def test_creation_with_context(self):
        """Test exception creation with context."""
        context = {"key1": "value1", "key2": 42}
        error = GHSpaceError("Test error", context=context, recoverable=True)

        assert error.context == context
        assert error.recoverable is True

    def test_string_representation_with_context(self):
        """Test string representation with context."""
        error = GHSpaceError("Test error", context={"param": "value", "count": 10})

        error_str = str(error)
        assert "Test error" in error_str
        assert "param=value" in error_str
        assert "count=10" in error_str

    def test_to_dict_method(self):
        """Test to_dict method."""
        context = {"test": "value"}
        error = GHSpaceError("Test message", context=context, recoverable=True)

        error_dict = error.to_dict()

        assert error_dict["type"] == "GHSpaceError"
        assert error_dict["message"] == "Test message"
        assert error_dict["context"] == context
        assert error_dict["recoverable"] is True

    def test_invalid_context_is_replaced(self):
        """Test that non-dict context is reported rather than stored."""
        error = GHSpaceError("Test", context=["not", "a", "dict"])

        assert "invalid_context" in error.context


class TestValidationError:
    """Test ValidationError class."""

    def test_basic_creation(self):
        error = ValidationError("Validation failed")

        assert isinstance(error, GHSpaceError)
        assert str(error) == "Validation failed"
        assert error.recoverable is True

    def test_creation_with_parameter_info(self):
        error = ValidationError(
            "Invalid parameter",
            parameter="distances",
            expected="square matrix",
            actual=(2, 3)
        )

        assert "Invalid parameter" in str(error)
        assert error.context["parameter"] == "distances"
        assert error.context["expected"] == "square matrix"
        assert error.context["actual"] == (2, 3)


class TestComputationError:
    """Test ComputationError class."""

    def test_basic_creation(self):
        error = ComputationError("Computation failed")

        assert isinstance(error, GHSpaceError)
        assert error.recoverable is False

    def test_creation_with_operation_info(self):
        error = ComputationError(
            "Transport plan is not finite",
            operation="gromov_wasserstein",
            values={"n_source": 5, "n_target": 7}
        )

        assert error.context["operation"] == "gromov_wasserstein"
        assert error.context["n_source"] == 5
        assert error.context["n_target"] == 7


class TestInvariantViolationError:
    """Test InvariantViolationError class."""

    def test_is_fatal_computation_error(self):
        error = InvariantViolationError("Triangle inequality fails",
                                        invariant="triangle", violation=0.25)

        assert isinstance(error, ComputationError)
        assert error.recoverable is False
        assert error.context["invariant"] == "triangle"
        assert error.context["violation"] == 0.25


class TestConfigurationError:
    """Test ConfigurationError class."""

    def test_creation_with_config_info(self):
        error = ConfigurationError(
            "Invalid config value",
            config_key="cauchy_ratio",
            config_value=2.0
        )

        assert error.recoverable is True
        assert error.context["config_key"] == "cauchy_ratio"
        assert error.context["config_value"] == 2.0


class TestConvergenceError:
    """Test ConvergenceError and ToleranceNotMetError."""

    def test_creation_with_convergence_info(self):
        error = ConvergenceError(
            "Refinement stalled",
            algorithm="hill_climbing",
            iterations=3,
            tolerance=1e-6
        )

        assert error.recoverable is True
        assert error.context["algorithm"] == "hill_climbing"
        assert error.context["iterations"] == 3
        assert error.context["tolerance"] == 1e-6

    def test_tolerance_not_met_carries_bounds(self):
        error = ToleranceNotMetError("Gap too large", lower_bound=0.25,
                                     upper_bound=0.5, tolerance=1e-3)

        assert isinstance(error, ConvergenceError)
        assert error.recoverable is True
        assert error.lower_bound == 0.25
        assert error.upper_bound == 0.5
        assert error.gap == pytest.approx(0.25)
        assert error.context["tolerance"] == 1e-3
        assert error.context["lower_bound"] == 0.25


class TestExceptionHierarchy:
    """Test exception hierarchy behavior."""

    def test_catching_base_exception(self):
        exceptions = [
            ValidationError("validation"),
            ComputationError("computation"),
            InvariantViolationError("invariant"),
            ConfigurationError("configuration"),
            ConvergenceError("convergence"),
            ToleranceNotMetError("tolerance", lower_bound=0.0, upper_bound=1.0, tolerance=0.1),
        ]

        for exc in exceptions:
            with pytest.raises(GHSpaceError):
                raise exc
