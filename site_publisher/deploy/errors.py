"""Exception types used inside the deployment layer.

None of these escape ``DeploymentTarget.deploy`` or the orchestrator; they are
converted into failure outcomes at those boundaries.
"""

from __future__ import annotations


class TargetConfigError(ValueError):
    """Raised when settings supplied to a target fail validation."""

    def __init__(self, target_id: str, problems: list[str]) -> None:
        self.target_id = target_id
        self.problems = list(problems)
        joined = "; ".join(self.problems) or "invalid settings"
        super().__init__(f"Invalid settings for deployment target '{target_id}': {joined}")


class TransportError(RuntimeError):
    """Raised when an HTTP request cannot be completed (network, timeout, TLS)."""


class DeployCancelled(RuntimeError):
    """Raised when a cancel token is tripped between blocking steps."""
