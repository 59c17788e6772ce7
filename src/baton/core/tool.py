"""
baton/core/tool.py

Function tools and the @tool decorator.

Design:
  - @tool works on both sync and async functions.
  - The parameter schema is derived once, from type hints, when the tool
    is built; it can be supplied explicitly instead. Nothing is
    introspected at call time.
  - Arguments are bound by parameter name. A parameter named `context`
    receives the RunContext of the calling run and is hidden from the
    schema.
  - Failures raise typed ToolErrors; the dispatcher turns them into
    per-call errors.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import types
import typing
from collections.abc import Callable
from typing import Any, Literal, Union

from pydantic import BaseModel

from baton.config import ParameterSchema, PropertySchema
from baton.context import RunContext
from baton.errors import ToolArgumentError, ToolTimeoutError
from baton.interfaces import Tool

logger = logging.getLogger(__name__)

_CONTEXT_PARAM = "context"

_TYPE_MAP: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


class FunctionTool(Tool):
    """
    Wraps a developer-provided function with metadata and execution logic.
    Usually created by the @tool decorator.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        timeout_s: float | None = 30.0,
        parameters: ParameterSchema | None = None,
    ) -> None:
        self._fn = fn
        self._name = name if name is not None else getattr(fn, "__name__", "")
        self._description = description or inspect.getdoc(fn) or ""
        self._timeout_s = timeout_s
        self._schema = parameters or _extract_schema(fn)
        self._is_async = asyncio.iscoroutinefunction(fn)

        sig = inspect.signature(fn)
        self._accepts_context = _CONTEXT_PARAM in sig.parameters
        self._accepts_kwargs = any(
            p.kind is inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values()
        )
        self._param_names = {
            n
            for n, p in sig.parameters.items()
            if n != _CONTEXT_PARAM
            and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def schema(self) -> ParameterSchema:
        return self._schema

    @property
    def timeout_s(self) -> float | None:
        return self._timeout_s

    def validate(self) -> None:
        super().validate()
        if not callable(self._fn):
            raise ValueError("invalid function")
        if self._timeout_s is not None and self._timeout_s <= 0:
            raise ValueError("timeout must be greater than 0")

    async def execute(self, arguments: dict[str, Any], context: RunContext) -> Any:
        kwargs = self._bind(arguments, context)
        if self._timeout_s is None:
            return await self._call(kwargs)
        try:
            return await asyncio.wait_for(self._call(kwargs), timeout=self._timeout_s)
        except TimeoutError:
            logger.debug("tool %s timed out after %ss", self._name, self._timeout_s)
            raise ToolTimeoutError(tool_name=self._name, timeout_s=self._timeout_s) from None

    async def __call__(self, **kwargs: Any) -> Any:
        """Direct invocation outside a run, mainly for tests and scripts."""
        return await self.execute(kwargs, RunContext(max_turns=1))

    def _bind(self, arguments: dict[str, Any], context: RunContext) -> dict[str, Any]:
        unknown = [k for k in arguments if k not in self._param_names]
        if unknown and not self._accepts_kwargs:
            raise ToolArgumentError(self._name, f"unexpected arguments {sorted(unknown)}")
        missing = [r for r in self._schema.required if r not in arguments]
        if missing:
            raise ToolArgumentError(self._name, f"missing required arguments {missing}")
        kwargs = dict(arguments)
        if self._accepts_context:
            kwargs[_CONTEXT_PARAM] = context
        return kwargs

    async def _call(self, kwargs: dict[str, Any]) -> Any:
        if self._is_async:
            return await self._fn(**kwargs)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self._fn, **kwargs))

    def __repr__(self) -> str:
        return f"FunctionTool(name={self._name!r})"


# ---------------------------------------------------------------------------
# Schema extraction from function signature
# ---------------------------------------------------------------------------


def _extract_schema(fn: Callable[..., Any]) -> ParameterSchema:
    """
    Build a ParameterSchema from function type annotations.
    Supports: str, int, float, bool, list[X], dict, Optional[X], Literal[...].
    Pydantic BaseModel parameters become objects.
    """
    sig = inspect.signature(fn)
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        hints = getattr(fn, "__annotations__", {})

    properties: dict[str, PropertySchema] = {}
    required: list[str] = []

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls", _CONTEXT_PARAM):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = hints.get(param_name, Any)
        annotation, optional = _unwrap_optional(annotation)

        prop = _property_for(annotation)
        prop_desc = _extract_param_doc(fn, param_name)
        if prop_desc:
            prop = prop.model_copy(update={"description": prop_desc})
        properties[param_name] = prop

        if param.default is inspect.Parameter.empty and not optional:
            required.append(param_name)

    return ParameterSchema(properties=properties, required=required)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return annotation, False


def _property_for(annotation: Any) -> PropertySchema:
    origin = typing.get_origin(annotation)

    if origin is Literal:
        values = list(typing.get_args(annotation))
        json_type = _TYPE_MAP.get(type(values[0]), "string") if values else "string"
        return PropertySchema(type=json_type, enum=values)

    if origin in (list, tuple, set, frozenset):
        args = typing.get_args(annotation)
        items = {"type": _TYPE_MAP.get(args[0], "string")} if args else None
        return PropertySchema(type="array", items=items)

    if origin is dict:
        return PropertySchema(type="object")

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return PropertySchema(type="object")

    return PropertySchema(type=_TYPE_MAP.get(annotation, "string"))


def _extract_param_doc(fn: Callable[..., Any], param_name: str) -> str | None:
    """Cheap extraction of `:param name:` or `name:` lines from the docstring."""
    doc = inspect.getdoc(fn) or ""
    for line in doc.splitlines():
        line = line.strip()
        if line.startswith(f":param {param_name}:"):
            return line.split(":", 2)[-1].strip()
        if line.startswith(f"{param_name}:") or line.startswith(f"{param_name} ("):
            return line.split(":", 1)[-1].strip()
    return None


# ---------------------------------------------------------------------------
# @tool decorator
# ---------------------------------------------------------------------------


def tool(
    description: str | None = None,
    name: str | None = None,
    timeout: float | None = 30.0,
    parameters: ParameterSchema | None = None,
) -> Callable[[Callable[..., Any]], FunctionTool]:
    """
    Decorator that turns a function into a baton tool.

    Args:
        description: Human-readable description sent to the model.
            Defaults to the function docstring.
        name: Override tool name. Defaults to the function name.
        timeout: Execution timeout in seconds. None disables it.
        parameters: Explicit schema, replacing the one derived from hints.

    Example::

        @tool(description="Look up the weather for a city.")
        async def weather(city: str, unit: Literal["c", "f"] = "c") -> str:
            ...
    """

    def decorator(fn: Callable[..., Any]) -> FunctionTool:
        built = FunctionTool(
            fn=fn,
            name=name,
            description=description,
            timeout_s=timeout,
            parameters=parameters,
        )
        functools.update_wrapper(built, fn)
        return built

    return decorator
