"""Construction of sandboxed components from transpiled source.

The transpiled body is wrapped in a factory function whose parameters are
exactly the capability names and whose last statement returns
``Dashboard``::

    def __flameview_factory__(h, Fragment, use_state, ..., Legend):
        <transpiled body>
        return Dashboard

The wrapper is compiled against a globals mapping that holds nothing but
the safe builtins. Before anything runs, a scope analysis refuses every
name the body would look up globally unless it is a safe builtin, so
generated code can only reach the capability values it was handed.
Calling the factory defines the generated functions; ``Dashboard`` itself
is never invoked here.
"""

from __future__ import annotations

import ast
import logging
import symtable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from flameview.errors import BuildError
from flameview.rendering import Element, HookStore, RenderNode, h, render_tree
from flameview.rendering.renderer import DEFAULT_MAX_PASSES
from flameview.source import GeneratedSource
from flameview.transpiler import TranspiledBody

from .capabilities import DEFAULT_CAPABILITIES, INTROSPECTION_ATTRIBUTES, SAFE_BUILTINS, CapabilitySet

logger = logging.getLogger(__name__)

COMPONENT_NAME = "Dashboard"
FACTORY_NAME = "__flameview_factory__"
FILENAME = "<dashboard>"


@dataclass(frozen=True, eq=False)
class CompiledComponent:
    """A generated component bound to its capability set.

    Identity matters: the render host hands out the same object for the
    same source text, so equality is identity.
    """

    function: Callable[..., Any]
    body: TranspiledBody
    capabilities: CapabilitySet = field(repr=False)
    source: Optional[GeneratedSource] = None

    def element(self, data: Mapping[str, Any]) -> Element:
        bundle = data if isinstance(data, MappingProxyType) else MappingProxyType(dict(data or {}))
        return h(self.function, {"data": bundle})

    def render(
        self,
        data: Mapping[str, Any],
        hooks: Optional[HookStore] = None,
        *,
        max_passes: int = DEFAULT_MAX_PASSES,
    ) -> RenderNode:
        """Render with ``data`` as the component's only input.

        Exceptions raised by the generated code propagate; containing them
        is the render host's job.
        """
        return render_tree(self.element(data), hooks, max_passes=max_passes)

    def __call__(self, data: Mapping[str, Any]) -> RenderNode:
        return self.render(data)


def _parse(code: str) -> ast.Module:
    try:
        return ast.parse(code, filename=FILENAME, mode="exec")
    except SyntaxError as exc:
        raise BuildError(
            f"Component source is not valid Python: {exc.msg}",
            line=exc.lineno,
            column=exc.offset,
        ) from exc


def _check_nodes(module: ast.Module) -> None:
    for node in ast.walk(module):
        if isinstance(node, ast.Attribute) and (
            node.attr.startswith("_") or node.attr in INTROSPECTION_ATTRIBUTES
        ):
            raise BuildError(
                f"Access to the special attribute '{node.attr}' is not allowed",
                line=node.lineno,
                column=node.col_offset + 1,
            )
        if isinstance(node, ast.Global):
            raise BuildError(
                "global declarations are not allowed in components",
                line=node.lineno,
                column=node.col_offset + 1,
            )
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            raise BuildError(
                "Components cannot import modules; use the provided primitives",
                line=node.lineno,
                column=node.col_offset + 1,
            )


def _wrap(module: ast.Module, capabilities: CapabilitySet) -> ast.Module:
    template = ast.parse(
        f"def {FACTORY_NAME}({', '.join(capabilities.names())}):\n    return {COMPONENT_NAME}\n",
        filename=FILENAME,
    )
    factory = template.body[0]
    factory.body = list(module.body) + factory.body
    return ast.fix_missing_locations(template)


def _iter_tables(table: symtable.SymbolTable) -> Iterator[symtable.SymbolTable]:
    for child in table.get_children():
        yield child
        yield from _iter_tables(child)


def _first_line(module: ast.Module, name: str) -> Optional[int]:
    for node in ast.walk(module):
        if isinstance(node, ast.Name) and node.id == name:
            return node.lineno
    return None


def _check_scope(wrapper: ast.Module, original: ast.Module) -> None:
    table = symtable.symtable(ast.unparse(wrapper), FILENAME, "exec")
    factory_table = next(child for child in table.get_children() if child.get_name() == FACTORY_NAME)

    if not factory_table.lookup(COMPONENT_NAME).is_assigned():
        raise BuildError(
            f"No component named '{COMPONENT_NAME}' is defined",
            hint=f"Define the component as 'def {COMPONENT_NAME}(data):'",
        )

    for scope in _iter_tables(table):
        for symbol in scope.get_symbols():
            name = symbol.get_name()
            if symbol.is_declared_global():
                raise BuildError(
                    f"global declaration of '{name}' is not allowed",
                    line=_first_line(original, name),
                )
            if symbol.is_global() and symbol.is_referenced() and name not in SAFE_BUILTINS:
                raise BuildError(
                    f"Name '{name}' is not available to components",
                    line=_first_line(original, name),
                    hint="Only the provided rendering, hook and chart primitives and basic builtins can be used.",
                )


def build(
    body: Union[TranspiledBody, str],
    capabilities: CapabilitySet = DEFAULT_CAPABILITIES,
    source: Optional[GeneratedSource] = None,
) -> CompiledComponent:
    """Bind ``body`` against ``capabilities``.

    Raises:
        BuildError: for any failure; nothing else escapes.
    """
    if isinstance(body, str):
        body = TranspiledBody(code=body)
    if not isinstance(body, TranspiledBody):
        raise BuildError(f"Cannot build a component from {type(body).__name__}")

    module = _parse(body.code)
    _check_nodes(module)
    wrapper = _wrap(module, capabilities)
    _check_scope(wrapper, module)

    namespace = {"__builtins__": dict(SAFE_BUILTINS)}
    try:
        code = compile(wrapper, FILENAME, "exec")
        exec(code, namespace)
        component = namespace[FACTORY_NAME](*capabilities.values())
    except BuildError:
        raise
    except Exception as exc:
        logger.debug("Component definition failed", exc_info=True)
        raise BuildError(f"Component definition failed: {type(exc).__name__}: {exc}") from exc

    if not callable(component):
        raise BuildError(f"'{COMPONENT_NAME}' must be a function, got {type(component).__name__}")

    return CompiledComponent(function=component, body=body, capabilities=capabilities, source=source)


__all__ = ["COMPONENT_NAME", "CompiledComponent", "FACTORY_NAME", "build"]
