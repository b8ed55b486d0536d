"""Custom exception hierarchy for ghspace.

All exceptions inherit from the base GHSpaceError class, providing consistent
error handling and categorization throughout the codebase.

Exception Categories:
- ValidationError: Boundary precondition failures (empty space, non-metric input)
- ComputationError: Numerical computation failures
- ConvergenceError: Iterative search failures
- ToleranceNotMetError: Relaxed coupling search did not reach the requested tolerance
- InvariantViolationError: A constructed glue space or coupling broke a metric axiom
- ConfigurationError: Invalid configuration values
"""

from typing import Optional, Any, Dict


class GHSpaceError(Exception):
    """Base exception for all ghspace errors.

    Attributes:
        message: Error message
        context: Additional context information
        recoverable: Whether the error is potentially recoverable
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.context = self._validate_context(context or {})
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the exception."""
        base_msg = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def _validate_context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and sanitize context dictionary.

        Args:
            context: Context dictionary to validate

        Returns:
            Validated context dictionary
        """
        if not isinstance(context, dict):
            return {"invalid_context": f"Context must be dict, got {type(context).__name__}"}

        max_context_size = 1000
        max_value_size = 10000

        if len(context) > max_context_size:
            return {
                "context_truncated": f"Context too large ({len(context)} items > {max_context_size})",
                "context_sample": dict(list(context.items())[:10])
            }

        validated_context = {}
        for key, value in context.items():
            if not isinstance(key, str):
                key = str(key)
            if len(key) > 100:
                key = key[:97] + "..."

            str_value = str(value)
            if len(str_value) > max_value_size:
                validated_context[key] = str_value[:max_value_size - 3] + "..."
            else:
                validated_context[key] = value

        return validated_context


class ValidationError(GHSpaceError):
    """Raised when an input violates a precondition at the boundary.

    Examples:
        - Empty space or empty seam
        - Distance matrix that is not square, symmetric or non-negative
        - Triangle inequality violated by user data
        - Sequence that is not geometrically Cauchy
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        expected: Optional[Any] = None,
        actual: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if parameter:
            context['parameter'] = parameter
        if expected is not None:
            context['expected'] = expected
        if actual is not None:
            context['actual'] = actual

        super().__init__(message, context, recoverable=True)


class ComputationError(GHSpaceError):
    """Raised when a numerical computation fails.

    Examples:
        - Transport solver returns a non-finite plan
        - Search space exceeds the configured limits
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        values: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if operation:
            context['operation'] = operation
        if values:
            context.update(values)

        super().__init__(message, context, recoverable=False)


class InvariantViolationError(ComputationError):
    """Raised when a constructed object breaks a metric invariant.

    This signals a bug in construction code, never a user-input error:
    a glued distance that is asymmetric, violates the triangle inequality,
    or a coupling whose embeddings are not isometric.
    """

    def __init__(
        self,
        message: str,
        invariant: Optional[str] = None,
        violation: Optional[float] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if invariant:
            context['invariant'] = invariant
        if violation is not None:
            context['violation'] = violation

        super().__init__(message, context=context)


class ConfigurationError(GHSpaceError):
    """Raised when configuration values are invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if config_key:
            context['config_key'] = config_key
        if config_value is not None:
            context['config_value'] = config_value

        super().__init__(message, context, recoverable=True)


class ConvergenceError(GHSpaceError):
    """Raised when iterative algorithms fail to converge.

    Examples:
        - Transport solver exceeds its iteration budget
        - Refinement of a correspondence stalls above tolerance
    """

    def __init__(
        self,
        message: str,
        algorithm: Optional[str] = None,
        iterations: Optional[int] = None,
        tolerance: Optional[float] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if algorithm:
            context['algorithm'] = algorithm
        if iterations is not None:
            context['iterations'] = iterations
        if tolerance is not None:
            context['tolerance'] = tolerance

        super().__init__(message, context, recoverable=True)


class ToleranceNotMetError(ConvergenceError):
    """Raised when a relaxed coupling search leaves a gap above tolerance.

    The caller may retry with the exact method or a larger search budget.
    """

    def __init__(
        self,
        message: str,
        lower_bound: float,
        upper_bound: float,
        tolerance: float,
        **kwargs
    ):
        context = kwargs.get('context', {})
        context['lower_bound'] = lower_bound
        context['upper_bound'] = upper_bound
        kwargs['context'] = context

        super().__init__(message, tolerance=tolerance, **kwargs)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.tolerance = tolerance

    @property
    def gap(self) -> float:
        """Difference between the certified bounds."""
        return self.upper_bound - self.lower_bound
