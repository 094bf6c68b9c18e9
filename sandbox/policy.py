"""
Sandbox policy: the allow-listed environment, import guard and strict checks.
"""

from __future__ import annotations

import ast
import builtins
import datetime
import json
import math
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import ModuleType, SimpleNamespace
from typing import cast

SCRIPT_FILENAME = "<script>"
SCRIPT_MODULE_NAME = "__main__"
GUARDED_GETATTR_NAME = "__sandbox_getattr__"

BLOCKED_MODULES = [
    "os",
    "sys",
    "subprocess",
    "socket",
    "urllib",
    "requests",
    "http",
    "ctypes",
    "importlib",
    "builtins",
    "io",
    "pathlib",
    "shutil",
    "pickle",
]

ALLOWED_MODULES = [
    "math",
    "random",
    "json",
    "datetime",
    "time",
    "itertools",
    "functools",
    "collections",
    "statistics",
    "string",
    "re",
    "decimal",
    "fractions",
]

PRELOADED_MODULES: dict[str, ModuleType] = {
    "math": math,
    "json": json,
    "datetime": datetime,
    "time": time,
}

SAFE_BUILTINS = [
    # constructors
    "int", "float", "str", "bool", "list", "dict", "tuple", "set", "frozenset",
    "bytes", "complex", "range", "object", "type", "slice",
    # functions
    "len", "abs", "min", "max", "sum", "round", "sorted", "reversed",
    "enumerate", "zip", "map", "filter", "any", "all", "divmod", "pow",
    "chr", "ord", "repr", "format", "isinstance", "issubclass", "hash",
    "iter", "next", "callable", "bin", "hex", "oct", "id",
    # class support
    "__build_class__", "property", "staticmethod", "classmethod", "super",
    "NotImplemented", "Ellipsis",
    # exceptions
    "BaseException", "Exception", "ArithmeticError", "AssertionError",
    "AttributeError", "IndexError", "KeyError", "LookupError", "NameError",
    "NotImplementedError", "OverflowError", "RecursionError", "RuntimeError",
    "StopIteration", "TypeError", "ValueError", "ZeroDivisionError",
    "UnboundLocalError", "ImportError", "ModuleNotFoundError",
    "Warning", "UserWarning", "DeprecationWarning", "RuntimeWarning",
]

_ALLOWED_DUNDER_NAMES = {"__name__"}

_ALLOWED_DUNDER_ATTRIBUTES = {
    "__init__", "__name__", "__doc__", "__str__", "__repr__", "__len__",
    "__eq__", "__lt__", "__iter__", "__next__", "__enter__", "__exit__",
}

# Reach into running frames and from there into host globals.
_FRAME_ATTRIBUTES = {
    "gi_frame", "gi_code", "cr_frame", "cr_code", "ag_frame", "ag_code",
    "f_back", "f_globals", "f_locals", "f_builtins", "f_code",
    "tb_frame", "tb_next",
}


class PolicyViolation(Exception):
    """Raised when script text uses a construct the sandbox refuses to run."""


# Public members that hand out arbitrary attribute lookups by string.
_HIDDEN_MEMBERS: dict[str, frozenset[str]] = {
    "string": frozenset({"Formatter"}),
}


class ModuleView(SimpleNamespace):
    """Public names of a module, minus any module objects it references."""

    def __init__(self, name: str) -> None:
        super().__init__(__name__=name)

    def __repr__(self) -> str:
        return f"<module '{self.__name__}'>"


class ModuleViews:
    """Per-run cache of module views, so every import of a module sees one view.

    A view keeps submodules of the module itself (``collections.abc``) as
    nested views and drops every other module reference (``statistics.sys``).
    """

    def __init__(self) -> None:
        self._views: dict[str, ModuleView] = {}

    def get(self, module: ModuleType) -> ModuleView:
        view = self._views.get(module.__name__)
        if view is not None:
            return view
        view = ModuleView(module.__name__)
        self._views[module.__name__] = view
        hidden = _HIDDEN_MEMBERS.get(module.__name__, frozenset())
        prefix = module.__name__ + "."
        for name in dir(module):
            if name.startswith("_") or name in hidden:
                continue
            value = getattr(module, name)
            if isinstance(value, ModuleType):
                if not value.__name__.startswith(prefix):
                    continue
                value = self.get(value)
            setattr(view, name, value)
        return view


def guarded_getattr(obj: object, name: str) -> object:
    """Attribute lookup for script code; never hands out a module object."""
    if isinstance(obj, ModuleType):
        raise PolicyViolation(f"access to '{name}' on module '{obj.__name__}' is not allowed")
    value = getattr(obj, name)
    if isinstance(value, ModuleType):
        raise PolicyViolation(f"attribute '{name}' refers to module '{value.__name__}'")
    return value


class _AttributeGuard(ast.NodeTransformer):
    """Rewrite every attribute read ``a.b`` into ``__sandbox_getattr__(a, "b")``."""

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        self.generic_visit(node)
        if not isinstance(node.ctx, ast.Load):
            return node
        call = ast.Call(
            func=ast.Name(id=GUARDED_GETATTR_NAME, ctx=ast.Load()),
            args=[node.value, ast.Constant(value=node.attr)],
            keywords=[],
        )
        return ast.copy_location(call, node)

    def visit_MatchValue(self, node: ast.MatchValue) -> ast.AST:
        # Value patterns must stay dotted names to compile.
        return node


def guard_attributes(tree: ast.Module) -> ast.Module:
    """Route attribute reads through ``guarded_getattr``; run after ``check_source``."""
    guarded = _AttributeGuard().visit(tree)
    return ast.fix_missing_locations(guarded)


def _normalize_modules(modules: Iterable[str] | None) -> set[str]:
    return {name for name in (modules or [])}


def build_import_guard(
    allowed_modules: Iterable[str] | None = None,
    blocked_modules: Iterable[str] | None = None,
    views: ModuleViews | None = None,
) -> Callable[[str, Mapping[str, object] | None, Mapping[str, object] | None, Sequence[str], int], ModuleView]:
    """
    Build a restricted __import__ hook that only allows allowlisted modules
    and explicitly blocks denied modules.

    Scripts receive a ModuleView of the imported module, never the module.
    """
    module_views = views or ModuleViews()
    allowed = _normalize_modules(allowed_modules or ALLOWED_MODULES)
    blocked = _normalize_modules(blocked_modules or BLOCKED_MODULES)
    original_import = cast(
        Callable[[str, Mapping[str, object] | None, Mapping[str, object] | None, Sequence[str], int], ModuleType],
        builtins.__import__,
    )

    def guarded_import(
        name: str,
        globals: Mapping[str, object] | None = None,
        locals: Mapping[str, object] | None = None,
        fromlist: Sequence[str] = (),
        level: int = 0,
    ) -> ModuleView:
        if level:
            raise ImportError("Relative imports are not available in scripts")
        root = name.split(".")[0]
        if root in blocked or name in blocked:
            raise ImportError(f"Import of '{root}' blocked by sandbox policy")
        if root not in allowed:
            raise ImportError(f"Import of '{root}' is not allowlisted")
        return module_views.get(original_import(name, globals, locals, fromlist, level))

    return guarded_import


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def check_source(tree: ast.AST) -> None:
    """
    Reject dunder names, dunder and frame attributes, and private module attributes.

    Learner classes may still use single-underscore attributes of their own.
    """
    module_names = set(PRELOADED_MODULES)
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                module_names.add(alias.asname or alias.name.split(".")[0])
        elif isinstance(node, ast.ImportFrom):
            for alias in node.names:
                if alias.name.startswith("_"):
                    raise PolicyViolation(
                        f"import of private name '{alias.name}' is not allowed (line {node.lineno})"
                    )

    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            private_module_attr = (
                node.attr.startswith("_")
                and isinstance(node.value, ast.Name)
                and node.value.id in module_names
            )
            blocked_dunder = _is_dunder(node.attr) and node.attr not in _ALLOWED_DUNDER_ATTRIBUTES
            if blocked_dunder or private_module_attr or node.attr in _FRAME_ATTRIBUTES:
                raise PolicyViolation(
                    f"access to attribute '{node.attr}' is not allowed (line {node.lineno})"
                )
        elif isinstance(node, ast.Name):
            if node.id.startswith("__") and node.id not in _ALLOWED_DUNDER_NAMES:
                raise PolicyViolation(f"use of name '{node.id}' is not allowed (line {node.lineno})")


def build_builtins(
    print_fn: Callable[..., None],
    allowed_modules: Iterable[str] | None = None,
    views: ModuleViews | None = None,
) -> dict[str, object]:
    namespace = {name: getattr(builtins, name) for name in SAFE_BUILTINS if hasattr(builtins, name)}
    namespace["print"] = print_fn
    namespace["__import__"] = build_import_guard(allowed_modules=allowed_modules, views=views)
    return namespace


def build_environment(
    print_fn: Callable[..., None],
    channels: Mapping[str, object],
    timer_bindings: Mapping[str, object],
    allowed_modules: Iterable[str] | None = None,
) -> dict[str, object]:
    """Assemble the globals a script runs against; nothing else is reachable.

    Expects code compiled from a tree that went through ``guard_attributes``.
    """
    views = ModuleViews()
    environment: dict[str, object] = {
        "__builtins__": build_builtins(print_fn, allowed_modules, views),
        "__name__": SCRIPT_MODULE_NAME,
        GUARDED_GETATTR_NAME: guarded_getattr,
    }
    environment.update({name: views.get(module) for name, module in PRELOADED_MODULES.items()})
    environment.update(channels)
    environment.update(timer_bindings)
    return environment
