"""Domain error types."""


class InputContractViolation(ValueError):
    """Raised when analysis data breaks the rating bounds contract."""


class InferenceError(RuntimeError):
    """Raised when the inference service returns nothing usable."""


class EntitlementOracleUnreachable(RuntimeError):
    """Raised when the entitlement backend cannot give a verdict."""
