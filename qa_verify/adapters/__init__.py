"""Host test-runner adapters."""

from .pytest_adapter import PytestAdapter, relay_outcomes

__all__ = ["PytestAdapter", "relay_outcomes"]
