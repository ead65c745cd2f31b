"""Sanitizer, capability set and component factory."""

from .capabilities import DEFAULT_CAPABILITIES, INTROSPECTION_ATTRIBUTES, SAFE_BUILTINS, CapabilitySet
from .compiler import CompileResult, compile_component
from .factory import COMPONENT_NAME, CompiledComponent, build
from .sanitizer import DENY_RULES, SanitizationVerdict, sanitize

__all__ = [
    "COMPONENT_NAME",
    "CapabilitySet",
    "CompileResult",
    "CompiledComponent",
    "DEFAULT_CAPABILITIES",
    "DENY_RULES",
    "INTROSPECTION_ATTRIBUTES",
    "SAFE_BUILTINS",
    "SanitizationVerdict",
    "build",
    "compile_component",
    "sanitize",
]
