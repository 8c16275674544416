"""Policy gating for qa-verify."""

from .engine import PolicyEngine, PolicyFaultMode
from .plugins import PolicyPlugin, StaticPolicyPlugin, BUILTIN_POLICY_PLUGINS

__all__ = [
    "PolicyEngine",
    "PolicyFaultMode",
    "PolicyPlugin",
    "StaticPolicyPlugin",
    "BUILTIN_POLICY_PLUGINS",
]
