"""Policy plugin contract and a static allow/deny list plugin."""

from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class PolicyPlugin(Protocol):
    """Votes on whether a test should run. May be sync or async."""

    def should_run(self, test_ids: List[str]) -> Any:
        ...


class StaticPolicyPlugin:
    """
    Decides from fixed id lists.

    Any denied id vetoes the test. When an allow list is given, every id of
    the test must be on it. Tests without ids run unless ``allow_untracked``
    is False.
    """

    def __init__(
        self,
        allowed_ids: Optional[Iterable[str]] = None,
        denied_ids: Optional[Iterable[str]] = None,
        allow_untracked: bool = True,
    ):
        self.allowed_ids = set(allowed_ids) if allowed_ids is not None else None
        self.denied_ids = set(denied_ids or ())
        self.allow_untracked = allow_untracked

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "StaticPolicyPlugin":
        return cls(
            allowed_ids=options.get("allow", options.get("allowed_ids")),
            denied_ids=options.get("deny", options.get("denied_ids")),
            allow_untracked=options.get("allowUntracked", options.get("allow_untracked", True)),
        )

    def should_run(self, test_ids: List[str]) -> bool:
        if not test_ids:
            return self.allow_untracked
        if any(test_id in self.denied_ids for test_id in test_ids):
            return False
        if self.allowed_ids is not None:
            return all(test_id in self.allowed_ids for test_id in test_ids)
        return True


BUILTIN_POLICY_PLUGINS = {
    "static": StaticPolicyPlugin.from_options,
}
