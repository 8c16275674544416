"""
pytest adapter.

Runs a test body through the execution engine and relays the outcomes to
pytest: any failed id fails the pytest test, all-skipped skips it.
"""

from typing import Any, Callable, List, Mapping, Optional, Union

import pytest

from ..core.config import Config
from ..core.registry import PluginRegistry
from ..execution.engine import VerificationHandle, run_test
from ..execution.models import TestOptions, TestOutcome


def relay_outcomes(outcomes: List[TestOutcome]) -> List[TestOutcome]:
    """
    Translate outcomes into pytest's pass/fail/skip signals.

    Returns the outcomes unchanged when nothing failed or was skipped.
    """
    failed = [o for o in outcomes if o.failed]
    if failed:
        pytest.fail(
            "; ".join(f"{o.test_id or 'untracked'}: {o.message}" for o in failed),
            pytrace=False,
        )
    if outcomes and all(o.skipped for o in outcomes):
        pytest.skip(outcomes[0].message or "skipped")
    return outcomes


class PytestAdapter:
    """Binds a registry and config so tests only supply description and body."""

    def __init__(self, registry: PluginRegistry, config: Optional[Config] = None):
        self.registry = registry
        self.config = config or Config()

    async def run(
        self,
        description: str,
        body: Callable[[VerificationHandle], Any],
        options: Union[TestOptions, Mapping[str, Any], None] = None,
    ) -> List[TestOutcome]:
        outcomes = await run_test(
            description,
            body,
            options,
            registry=self.registry,
            config=self.config,
        )
        return relay_outcomes(outcomes)
