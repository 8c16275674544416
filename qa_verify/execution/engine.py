"""
Test execution engine.

Wraps one test body with a policy check, verification handling, reporting
and lifecycle callbacks, and resolves it to one TestOutcome per test id.
"""

import asyncio
import contextvars
import functools
import inspect
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.config import Config
from ..core.exceptions import EngineStateError, TestTimeoutError, ValidationError
from ..core.logging_config import get_logger, log_performance
from ..core.registry import PluginRegistry
from ..policy.engine import PolicyEngine
from ..reporting.reporter import Reporter
from .description import TestDescription
from .events import EventDispatcher
from .matchers import evaluate
from .models import (
    FailureKind,
    LifecycleEvent,
    LogLevel,
    OutcomeStatus,
    TestOptions,
    TestOutcome,
    VerificationResult,
)
from .signals import AbortSignal, ExplicitFailure, SkipSignal, VerificationFailure


# how long a timed-out body gets to react to cancellation
CANCEL_GRACE_SECONDS = 1.0

POLICY_DENIED_MESSAGE = "Execution denied by policy engine"


class EngineState(Enum):
    """Lifecycle states of a TestExecutionEngine."""

    PENDING = "pending"
    POLICY_CHECK = "policy_check"
    SKIPPED = "skipped"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    REPORTED = "reported"
    DONE = "done"


class VerificationHandle:
    """
    The object a test body receives.

    ``verify`` and ``step`` return awaitables inside an async body. A
    synchronous body runs in a worker thread, where they block until done
    and return their result directly.
    """

    def __init__(self, engine: "TestExecutionEngine"):
        self._engine = engine

    @property
    def reporter(self) -> Reporter:
        return self._engine.reporter

    @property
    def test_ids(self):
        return self._engine.test_ids

    def verify(self, actual: Any, expected: Any, description: Optional[str] = None):
        """
        Check ``actual`` against ``expected`` (value, Matcher or predicate).

        Raises VerificationFailure when the check fails and the test halts on
        verification failure; otherwise the result is returned either way.
        """
        return self._engine._submit(self._engine._verify(actual, expected, description))

    def fail(self, message: str, test_id: Optional[str] = None, halt: Optional[bool] = None) -> None:
        """
        Fail the test, or only ``test_id``, without a verification.

        A failure without ``test_id`` halts when the test halts on
        verification failure. A failure for one id continues unless
        ``halt`` is True.
        """
        self._engine._fail(message, test_id, halt)

    def step(self, text: str):
        return self._engine._submit(self._engine.reporter.step(text))

    def skip(self, reason: Optional[str] = None) -> None:
        """Stop the body and mark every id as skipped."""
        raise SkipSignal(reason or "Skipped by test")


class TestExecutionEngine:
    """
    Runs a single test body. One instance, one invocation.

    States: PENDING -> POLICY_CHECK -> (SKIPPED | RUNNING -> COMPLETED |
    ABORTED) -> REPORTED -> DONE.
    """

    def __init__(
        self,
        description: str,
        registry: PluginRegistry,
        config: Optional[Config] = None,
        options: Union[TestOptions, Mapping[str, Any], None] = None,
    ):
        """
        Initialize the engine.

        Args:
            description: Test description, may contain bracketed test ids
            registry: Shared plugin registry; frozen on first use
            config: Resolved configuration supplying option defaults
            options: Per-test options

        Raises:
            ValidationError: If ``options`` are malformed
        """
        self.config = config or Config()
        self.options = self._coerce_options(options)
        self.description = TestDescription.parse(description)
        self.registry = registry.freeze()
        self.state = EngineState.PENDING

        self.halt_on_verify_failure = self._resolve(
            self.options.halt_on_verify_failure, self.config.halt_on_verify_failure
        )
        self.policy_engine_enabled = self._resolve(
            self.options.policy_engine_enabled, self.config.policy_engine_enabled
        )
        self.timeout_ms = self._resolve(self.options.timeout_ms, self.config.test_timeout_ms)
        self.log_level = self.options.log_level or LogLevel(self.config.report_log_level)

        self.logger = get_logger(__name__, test_description=description)
        self.reporter = Reporter(
            registry,
            description,
            log_level=self.log_level,
            plugin_timeout=self.config.plugin_timeout,
        )
        self.policy_engine = PolicyEngine(
            registry,
            enabled=self.policy_engine_enabled,
            fault_mode=self.config.policy_fault_mode,
            plugin_timeout=self.config.plugin_timeout,
        )
        self.dispatcher = EventDispatcher(self.reporter, self.options.on_events)

        self.verifications: List[VerificationResult] = []
        self.failure_kind: Optional[FailureKind] = None
        self.outcomes: List[TestOutcome] = []
        self._failure_message: Optional[str] = None
        self._id_failures: Dict[str, str] = {}
        self._abort_message: Optional[str] = None
        self._skip_reason: Optional[str] = None
        self._denied_by_policy = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # set once a synchronous body returns in its worker thread
        self._worker_done: Optional[threading.Event] = None

    @staticmethod
    def _coerce_options(options: Union[TestOptions, Mapping[str, Any], None]) -> TestOptions:
        if options is None:
            return TestOptions()
        if isinstance(options, TestOptions):
            return options
        try:
            return TestOptions.model_validate(dict(options))
        except PydanticValidationError as e:
            violations = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ValidationError(
                "Invalid test options: " + "; ".join(violations),
                validation_type="test_options",
                violations=violations,
            ) from e

    @staticmethod
    def _resolve(value: Any, default: Any) -> Any:
        return default if value is None else value

    @property
    def test_ids(self):
        return self.description.test_ids

    def _transition(self, state: EngineState) -> None:
        self.logger.debug(f"Engine state: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self, body: Callable[[VerificationHandle], Any]) -> List[TestOutcome]:
        """
        Execute ``body`` and return one outcome per test id.

        Body errors, verification failures, timeouts and plugin faults are
        all converted into outcomes; this method does not raise for them.

        Raises:
            EngineStateError: If the engine has already run
        """
        if self.state is not EngineState.PENDING:
            raise EngineStateError(
                "TestExecutionEngine instances cannot be re-run",
                state=self.state.value,
            )

        started = time.perf_counter()

        self._transition(EngineState.POLICY_CHECK)
        if await self.policy_engine.should_run(self.test_ids):
            self._transition(EngineState.RUNNING)
            await self._execute(body)
        else:
            self._skip_reason = POLICY_DENIED_MESSAGE
            self._denied_by_policy = True
            self._transition(EngineState.SKIPPED)

        duration_ms = (time.perf_counter() - started) * 1000
        self.outcomes = self._resolve_outcomes(duration_ms)

        await self._report()
        self._transition(EngineState.DONE)

        log_performance(
            self.logger,
            "test_execution",
            duration_ms / 1000,
            test_ids=list(self.test_ids),
            statuses=[o.status.value for o in self.outcomes],
            failure_kind=self.failure_kind.value if self.failure_kind else None,
        )
        return list(self.outcomes)

    def _submit(self, coroutine):
        """
        Run a handle coroutine for the body.

        On the event loop the coroutine is returned for the body to await.
        From a synchronous body's worker thread it is run on the loop and
        its result, or exception, is returned in the worker.
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and running is self._loop:
            return coroutine

        if self.state is not EngineState.RUNNING or self._loop is None:
            coroutine.close()
            raise AbortSignal(f"Test body is no longer running ({self.state.value})")
        return asyncio.run_coroutine_threadsafe(coroutine, self._loop).result()

    def _call_sync_body(
        self, body: Callable[[VerificationHandle], Any], handle: VerificationHandle
    ) -> Any:
        try:
            return body(handle)
        finally:
            self._worker_done.set()

    async def _run_in_worker(
        self, body: Callable[[VerificationHandle], Any], handle: VerificationHandle
    ) -> Any:
        # one thread per body: a timed-out body may never return
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="qa-verify-body")
        self._worker_done = threading.Event()
        context = contextvars.copy_context()
        try:
            return await self._loop.run_in_executor(
                executor, functools.partial(context.run, self._call_sync_body, body, handle)
            )
        finally:
            executor.shutdown(wait=False)

    async def _invoke_body(self, body: Callable[[VerificationHandle], Any]) -> Any:
        handle = VerificationHandle(self)
        if inspect.iscoroutinefunction(body):
            result = body(handle)
        else:
            result = await self._run_in_worker(body, handle)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _execute(self, body: Callable[[VerificationHandle], Any]) -> None:
        self._loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(self._invoke_body(body))
        timeout = self.timeout_ms / 1000 if self.timeout_ms else None

        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            error = TestTimeoutError(
                f"Test timed out after {self.timeout_ms}ms",
                test_description=self.description.text,
                timeout_ms=self.timeout_ms,
            )
            # abort first so a late verify from a worker thread is refused
            self._abort(FailureKind.TIMEOUT, error.message)
            task.cancel()
            await asyncio.wait({task}, timeout=CANCEL_GRACE_SECONDS)
            if task.done() and not task.cancelled():
                task.exception()
            self._warn_if_still_running(task)
            return

        try:
            task.result()
        except SkipSignal as signal:
            self._skip_reason = signal.message
            self._transition(EngineState.SKIPPED)
        except AbortSignal as signal:
            self._abort(signal.kind, signal.message)
        except asyncio.CancelledError:
            self._abort(FailureKind.BODY_ERROR, "Test body was cancelled")
        except Exception as e:
            self.logger.debug("Test body raised", exc_info=True)
            self._abort(FailureKind.BODY_ERROR, f"{type(e).__name__}: {e}")
        else:
            self._transition(EngineState.COMPLETED)

    def _warn_if_still_running(self, task: "asyncio.Future") -> None:
        if not task.done():
            self.logger.warning(
                f"Test body ignored cancellation and is still running after "
                f"{CANCEL_GRACE_SECONDS}s grace period"
            )
        elif self._worker_done is not None and not self._worker_done.is_set():
            self.logger.warning(
                "Synchronous test body is still running in its worker thread after timeout"
            )

    def _abort(self, kind: FailureKind, message: str) -> None:
        self.failure_kind = kind
        self._abort_message = message
        self.logger.info(
            f"Test aborted ({kind.value}): {message}",
            extra={"metadata": {"failure_kind": kind.value}},
        )
        self._transition(EngineState.ABORTED)

    def _check_test_id(self, test_id: Optional[str]) -> None:
        if test_id is not None and test_id not in self.test_ids:
            raise ValueError(
                f"Unknown test id '{test_id}'; expected one of {list(self.test_ids)}"
            )

    def _record_failure(self, kind: FailureKind, message: str, test_id: Optional[str] = None) -> None:
        if test_id is not None:
            self._id_failures[test_id] = message
        else:
            # the last failure wins when the test continues past failures
            self._failure_message = message
            self.failure_kind = kind

    async def _verify(
        self, actual: Any, expected: Any, description: Optional[str] = None
    ) -> VerificationResult:
        result = evaluate(actual, expected)
        if description and not result.passed:
            result = VerificationResult(
                passed=False,
                message=f"{description}: {result.message}",
                actual=result.actual,
                expected=result.expected,
            )
        self.verifications.append(result)

        if result.passed:
            await self.reporter.debug(f"Verification passed: {description or repr(actual)}")
            return result

        await self.reporter.warn(f"Verification failed: {result.message}")
        if self.halt_on_verify_failure:
            raise VerificationFailure(result)
        self._record_failure(FailureKind.VERIFICATION, result.message)
        return result

    def _fail(self, message: str, test_id: Optional[str] = None, halt: Optional[bool] = None) -> None:
        self._check_test_id(test_id)
        if halt is None:
            halt = self.halt_on_verify_failure if test_id is None else False
        if halt:
            raise ExplicitFailure(message, test_id)
        self._record_failure(FailureKind.EXPLICIT, message, test_id)

    def _resolve_outcomes(self, duration_ms: float) -> List[TestOutcome]:
        slots = list(self.test_ids) or [None]
        outcomes = []

        for test_id in slots:
            if self.state is EngineState.ABORTED:
                status, message = OutcomeStatus.FAILED, self._abort_message
            elif self._denied_by_policy:
                status, message = OutcomeStatus.SKIPPED, self._skip_reason
            # failures recorded before a skip from the body still count
            elif test_id in self._id_failures:
                status, message = OutcomeStatus.FAILED, self._id_failures[test_id]
            elif self._failure_message is not None:
                status, message = OutcomeStatus.FAILED, self._failure_message
            elif self.state is EngineState.SKIPPED:
                status, message = OutcomeStatus.SKIPPED, self._skip_reason
            else:
                status, message = OutcomeStatus.PASSED, None

            outcomes.append(
                TestOutcome(
                    test_id=test_id,
                    status=status,
                    message=message,
                    duration_ms=duration_ms,
                )
            )
        return outcomes

    async def _report(self) -> None:
        self._transition(EngineState.REPORTED)

        for outcome in self.outcomes:
            if outcome.passed:
                await self.reporter.pass_(outcome.test_id)
            elif outcome.failed:
                await self.reporter.fail(outcome.test_id, outcome.message)
            else:
                await self.reporter.warn(
                    f"{outcome.test_id or 'untracked'} skipped: {outcome.message}"
                )

        await self.dispatcher.dispatch(LifecycleEvent.DONE)
        if any(o.failed for o in self.outcomes):
            await self.dispatcher.dispatch(LifecycleEvent.FAIL)
        if any(o.skipped for o in self.outcomes):
            await self.dispatcher.dispatch(LifecycleEvent.SKIP)


async def run_test(
    description: str,
    body: Callable[[VerificationHandle], Any],
    options: Union[TestOptions, Mapping[str, Any], None] = None,
    *,
    registry: PluginRegistry,
    config: Optional[Config] = None,
) -> List[TestOutcome]:
    """
    Entry point for test-runner adapters.

    Args:
        description: Test description with optional ``[ID]`` tokens
        body: Callable receiving a VerificationHandle; may be async
        options: Per-test options
        registry: Shared plugin registry
        config: Resolved configuration

    Returns:
        One TestOutcome per unique id, or a single untracked outcome
    """
    engine = TestExecutionEngine(description, registry, config=config, options=options)
    return await engine.run(body)
