"""Exception hierarchy for control-plane misuse.

Admission, routing and screening never raise: their outcome is always a
value. These exceptions flag caller errors only.
"""


class ControlPlaneError(Exception):
    """Base exception for all control-plane errors."""


class EmptyProviderListError(ControlPlaneError, ValueError):
    """Raised when a provider selection is asked to choose from nothing."""

    def __init__(self, operation: str):
        super().__init__(f"{operation} requires at least one provider")
        self.operation = operation


class GatewayClosedError(ControlPlaneError, RuntimeError):
    """Raised when a closed gateway is used."""

    def __init__(self, operation: str = ""):
        message = "Gateway is closed"
        if operation:
            message = f"Gateway is closed; cannot {operation}"
        super().__init__(message)
        self.operation = operation
