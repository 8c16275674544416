"""
Process-wide plugin registry.

The registry is built once at startup, frozen, and then shared read-only by
every Reporter, PolicyEngine and TestExecutionEngine of the process.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .config import Config
from .exceptions import EngineStateError, PluginError, ValidationError
from .logging_config import get_logger, log_plugin_fault


PluginFactory = Callable[[Dict[str, Any]], Any]


async def _call(method: Callable[..., Any], args: Tuple[Any, ...]) -> Any:
    if inspect.iscoroutinefunction(method):
        result = method(*args)
    else:
        result = await asyncio.to_thread(method, *args)
    # sync methods may still hand back an awaitable
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_plugin(
    registration: "PluginRegistration",
    operation: str,
    *args,
    timeout: Optional[float] = None,
) -> Any:
    """
    Call ``operation`` on a registered plugin, awaiting it if it is async.

    Synchronous methods run in a worker thread so ``timeout`` bounds them
    too. Any failure, including a missing method or an exceeded
    ``timeout``, is raised as PluginError.
    """
    try:
        method = getattr(registration.plugin, operation)
        return await asyncio.wait_for(_call(method, args), timeout)
    except asyncio.TimeoutError as e:
        raise PluginError(
            f"Plugin '{registration.name}' did not complete {operation} within {timeout}s",
            plugin_name=registration.name,
            operation=operation,
        ) from e
    except Exception as e:
        raise PluginError(
            f"Plugin '{registration.name}' failed in {operation}: {type(e).__name__}: {e}",
            plugin_name=registration.name,
            operation=operation,
        ) from e


@dataclass(frozen=True)
class PluginRegistration:
    """Association between a plugin instance and its resolved options."""

    name: str
    plugin: Any
    options: Dict[str, Any] = field(default_factory=dict)

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


class PluginRegistry:
    """Holds reporting and policy plugin registrations."""

    def __init__(self):
        self.logger = get_logger("qa_verify.registry")
        self._reporters: Tuple[PluginRegistration, ...] = ()
        self._policies: Tuple[PluginRegistration, ...] = ()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def reporters(self) -> Tuple[PluginRegistration, ...]:
        return self._reporters

    @property
    def policies(self) -> Tuple[PluginRegistration, ...]:
        return self._policies

    def _check_open(self, name: str) -> None:
        if self._frozen:
            raise EngineStateError(
                f"Cannot register plugin '{name}': registry is frozen",
                state="frozen",
            )

    def register_reporter(self, name: str, plugin: Any, **options) -> PluginRegistration:
        """Register a reporting plugin. Order of registration is call order."""
        self._check_open(name)
        registration = PluginRegistration(name=name, plugin=plugin, options=options)
        self._reporters = self._reporters + (registration,)
        self.logger.debug(f"Registered reporting plugin: {name}")
        return registration

    def register_policy(self, name: str, plugin: Any, **options) -> PluginRegistration:
        """Register a policy plugin."""
        self._check_open(name)
        registration = PluginRegistration(name=name, plugin=plugin, options=options)
        self._policies = self._policies + (registration,)
        self.logger.debug(f"Registered policy plugin: {name}")
        return registration

    def freeze(self) -> "PluginRegistry":
        """Close the registry for further registration. Idempotent."""
        if not self._frozen:
            self._frozen = True
            self.logger.info(
                "Plugin registry frozen",
                extra={
                    "metadata": {
                        "reporters": [r.name for r in self._reporters],
                        "policies": [p.name for p in self._policies],
                    }
                },
            )
        return self

    @classmethod
    def from_config(
        cls,
        config: Config,
        reporting_factories: Optional[Mapping[str, PluginFactory]] = None,
        policy_factories: Optional[Mapping[str, PluginFactory]] = None,
    ) -> "PluginRegistry":
        """
        Instantiate the plugins named in ``config`` and return a frozen registry.

        Args:
            config: Resolved configuration
            reporting_factories: Plugin name -> factory taking the options dict
            policy_factories: Plugin name -> factory taking the options dict

        Returns:
            Frozen registry

        Raises:
            ValidationError: If a configured plugin has no factory
        """
        registry = cls()
        sources = (
            ("reporting", reporting_factories or {}, registry.register_reporter),
            ("policy", policy_factories or {}, registry.register_policy),
        )

        for kind, factories, register in sources:
            for entry in config.plugins_of_kind(kind):
                factory = factories.get(entry.name)
                if factory is None:
                    raise ValidationError(
                        f"No {kind} plugin available for name: {entry.name}",
                        validation_type="plugins",
                        violations=[entry.name],
                    )
                register(entry.name, factory(dict(entry.options)), **entry.options)

        return registry.freeze()

    async def dispose(self, timeout: Optional[float] = None) -> None:
        """Call the optional ``dispose`` hook of every plugin, isolating failures."""
        for registration in self._reporters + self._policies:
            if not hasattr(registration.plugin, "dispose"):
                continue
            try:
                await invoke_plugin(registration, "dispose", timeout=timeout)
            except PluginError as e:
                log_plugin_fault(self.logger, registration.name, "dispose", e)
