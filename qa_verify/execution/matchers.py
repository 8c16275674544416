"""
Matchers used by ``verify``.

``evaluate`` compares an actual value against an expected value, a Matcher,
or a one-argument predicate, and returns a VerificationResult. Plain values
are compared structurally: mappings by key set then values, sequences by
length then element order.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Callable, Optional

from .models import VerificationResult


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _where(path: str) -> str:
    return f"at {path}: " if path else ""


def find_difference(actual: Any, expected: Any, path: str = "") -> Optional[str]:
    """
    Describe the first structural difference between ``actual`` and ``expected``.

    Returns:
        None when the values are deeply equal, otherwise a readable message
    """
    # matchers may be nested anywhere inside an expected structure
    if isinstance(expected, Matcher):
        if expected.matches(actual):
            return None
        return _where(path) + expected.failure_message(actual)

    if isinstance(expected, Mapping) and isinstance(actual, Mapping):
        missing = [k for k in expected if k not in actual]
        unexpected = [k for k in actual if k not in expected]
        if missing or unexpected:
            parts = []
            if missing:
                parts.append("missing keys " + ", ".join(repr(k) for k in missing))
            if unexpected:
                parts.append("unexpected keys " + ", ".join(repr(k) for k in unexpected))
            return _where(path) + "; ".join(parts)
        for key in expected:
            diff = find_difference(actual[key], expected[key], f"{path}[{key!r}]")
            if diff:
                return diff
        return None

    if _is_sequence(expected) and _is_sequence(actual):
        if len(actual) != len(expected):
            return (
                f"{_where(path)}expected length {len(expected)} "
                f"but found {len(actual)}"
            )
        for index, (a, e) in enumerate(zip(actual, expected)):
            diff = find_difference(a, e, f"{path}[{index}]")
            if diff:
                return diff
        return None

    if actual == expected:
        return None
    return f"{_where(path)}expected {expected!r} but found {actual!r}"


def deep_equal(actual: Any, expected: Any) -> bool:
    return find_difference(actual, expected) is None


class Matcher:
    """Base class for tagged matchers. Combine with ``&`` and ``|``."""

    def matches(self, actual: Any) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__

    def failure_message(self, actual: Any) -> str:
        return f"expected {actual!r} to be {self.describe()}"

    def __call__(self, actual: Any) -> bool:
        return self.matches(actual)

    def __and__(self, other: Any) -> "Matcher":
        return AllOf(self, as_matcher(other))

    def __or__(self, other: Any) -> "Matcher":
        return AnyOf(self, as_matcher(other))

    def __invert__(self) -> "Matcher":
        return Not(self)

    def __repr__(self) -> str:
        return f"<{self.describe()}>"


class Equaling(Matcher):
    def __init__(self, expected: Any):
        self.expected = expected

    def matches(self, actual: Any) -> bool:
        return deep_equal(actual, self.expected)

    def describe(self) -> str:
        return f"equal to {self.expected!r}"

    def failure_message(self, actual: Any) -> str:
        return find_difference(actual, self.expected) or super().failure_message(actual)


class Containing(Matcher):
    def __init__(self, item: Any):
        self.item = item

    def matches(self, actual: Any) -> bool:
        if isinstance(actual, str):
            return isinstance(self.item, str) and self.item in actual
        if isinstance(actual, Mapping):
            if isinstance(self.item, Mapping):
                return all(
                    key in actual and deep_equal(actual[key], value)
                    for key, value in self.item.items()
                )
            return self.item in actual
        if isinstance(actual, Iterable):
            return any(deep_equal(element, self.item) for element in actual)
        return False

    def describe(self) -> str:
        return f"containing {self.item!r}"


class GreaterThan(Matcher):
    def __init__(self, bound: Any):
        self.bound = bound

    def matches(self, actual: Any) -> bool:
        try:
            return actual > self.bound
        except TypeError:
            return False

    def describe(self) -> str:
        return f"greater than {self.bound!r}"


class LessThan(Matcher):
    def __init__(self, bound: Any):
        self.bound = bound

    def matches(self, actual: Any) -> bool:
        try:
            return actual < self.bound
        except TypeError:
            return False

    def describe(self) -> str:
        return f"less than {self.bound!r}"


class Between(Matcher):
    """Inclusive range check."""

    def __init__(self, low: Any, high: Any):
        self.low = low
        self.high = high

    def matches(self, actual: Any) -> bool:
        try:
            return self.low <= actual <= self.high
        except TypeError:
            return False

    def describe(self) -> str:
        return f"between {self.low!r} and {self.high!r}"


class Exists(Matcher):
    def matches(self, actual: Any) -> bool:
        return actual is not None

    def describe(self) -> str:
        return "not None"


class HavingLength(Matcher):
    def __init__(self, expected: Any):
        self.expected = as_matcher(expected)

    def matches(self, actual: Any) -> bool:
        try:
            size = len(actual)
        except TypeError:
            return False
        return self.expected.matches(size)

    def describe(self) -> str:
        return f"with length {self.expected.describe()}"


class Satisfying(Matcher):
    """Wraps a one-argument predicate."""

    def __init__(self, predicate: Callable[[Any], Any], description: Optional[str] = None):
        self.predicate = predicate
        self.description = description or getattr(predicate, "__name__", repr(predicate))

    def matches(self, actual: Any) -> bool:
        return bool(self.predicate(actual))

    def describe(self) -> str:
        return f"satisfying {self.description}"


class Not(Matcher):
    def __init__(self, matcher: Any):
        self.matcher = as_matcher(matcher)

    def matches(self, actual: Any) -> bool:
        return not self.matcher.matches(actual)

    def describe(self) -> str:
        return f"not {self.matcher.describe()}"


class AllOf(Matcher):
    def __init__(self, *matchers: Any):
        self.matchers = [as_matcher(m) for m in matchers]

    def matches(self, actual: Any) -> bool:
        return all(m.matches(actual) for m in self.matchers)

    def describe(self) -> str:
        return "(" + " and ".join(m.describe() for m in self.matchers) + ")"

    def failure_message(self, actual: Any) -> str:
        for matcher in self.matchers:
            if not matcher.matches(actual):
                return matcher.failure_message(actual)
        return super().failure_message(actual)


class AnyOf(Matcher):
    def __init__(self, *matchers: Any):
        self.matchers = [as_matcher(m) for m in matchers]

    def matches(self, actual: Any) -> bool:
        return any(m.matches(actual) for m in self.matchers)

    def describe(self) -> str:
        return "(" + " or ".join(m.describe() for m in self.matchers) + ")"


def as_matcher(expected: Any) -> Matcher:
    """Coerce an expected value into a Matcher. Classes compare by equality."""
    if isinstance(expected, Matcher):
        return expected
    if callable(expected) and not isinstance(expected, type):
        return Satisfying(expected)
    return Equaling(expected)


equaling = Equaling
containing = Containing
greater_than = GreaterThan
less_than = LessThan
between = Between
having_length = HavingLength
satisfying = Satisfying
not_ = Not
all_of = AllOf
any_of = AnyOf


def exists() -> Matcher:
    return Exists()


def evaluate(actual: Any, expected: Any) -> VerificationResult:
    """
    Evaluate ``actual`` against ``expected``.

    Args:
        actual: Value under test
        expected: Plain value, Matcher, or one-argument predicate

    Returns:
        VerificationResult with a failure message when the check fails
    """
    matcher = as_matcher(expected)
    try:
        passed = bool(matcher.matches(actual))
        message = None if passed else matcher.failure_message(actual)
    except Exception as e:
        passed = False
        message = f"{matcher.describe()} raised {type(e).__name__}: {e}"

    return VerificationResult(
        passed=passed,
        message=message,
        actual=actual,
        expected=expected,
    )
