"""
Policy engine.

Asks the registered policy plugins whether a test should run. Votes are
combined with AND semantics: a single dissent vetoes execution.
"""

from enum import Enum
from typing import Optional, Sequence, Union

from ..core.exceptions import PluginError
from ..core.logging_config import get_logger, log_plugin_fault
from ..core.registry import PluginRegistry, invoke_plugin


class PolicyFaultMode(Enum):
    """How a policy plugin that raises or times out is counted."""

    ABSTAIN = "abstain"
    DENY = "deny"


class PolicyEngine:
    """Aggregates policy plugin votes for a set of test ids."""

    def __init__(
        self,
        registry: PluginRegistry,
        enabled: bool = True,
        fault_mode: Union[PolicyFaultMode, str] = PolicyFaultMode.ABSTAIN,
        plugin_timeout: Optional[float] = None,
    ):
        self.registry = registry
        self.enabled = enabled
        self.fault_mode = PolicyFaultMode(fault_mode)
        self.plugin_timeout = plugin_timeout
        self.logger = get_logger("qa_verify.policy")

    async def should_run(self, test_ids: Sequence[str]) -> bool:
        """
        Decide whether a test referencing ``test_ids`` should execute.

        Returns True when the engine is disabled or no policy plugin is
        registered. A faulting plugin abstains or vetoes per ``fault_mode``.

        Args:
            test_ids: Ids parsed from the test description, possibly empty

        Returns:
            True if every voting plugin approves
        """
        registrations = self.registry.policies
        if not self.enabled or not registrations:
            return True

        ids = list(test_ids)
        for registration in registrations:
            try:
                vote = await invoke_plugin(
                    registration, "should_run", ids, timeout=self.plugin_timeout
                )
            except PluginError as e:
                log_plugin_fault(
                    self.logger,
                    registration.name,
                    "should_run",
                    e,
                    fault_mode=self.fault_mode.value,
                    test_ids=ids,
                )
                if self.fault_mode is PolicyFaultMode.DENY:
                    return False
                continue

            if not vote:
                self.logger.info(
                    f"Execution denied by policy plugin: {registration.name}",
                    extra={"plugin": registration.name, "metadata": {"test_ids": ids}},
                )
                return False

        return True
