"""
Function Tools

Wraps plain Python callables (sync or async) as tools. The parameter schema
is generated from the function signature unless one is given explicitly.
Sync functions run in a worker thread so they do not block sibling tool
calls of the same turn.
"""

import asyncio
import inspect
from typing import Any, Callable


def schema_from_signature(func: Callable[..., Any]) -> dict[str, Any]:
    """
    Auto-generate a JSON schema from a function signature.

    Args:
        func: Function whose keyword parameters describe the tool input

    Returns:
        JSON schema of type object with properties and required names
    """
    sig = inspect.signature(func)
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param_name, param in sig.parameters.items():
        if param_name == "self" or param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue

        # Determine parameter type
        param_type = "string"  # Default
        annotation = param.annotation
        if annotation is bool:
            param_type = "boolean"
        elif annotation is int:
            param_type = "integer"
        elif annotation is float:
            param_type = "number"
        elif annotation is dict or getattr(annotation, "__origin__", None) is dict:
            param_type = "object"
        elif annotation is list or getattr(annotation, "__origin__", None) is list:
            param_type = "array"

        properties[param_name] = {
            "type": param_type,
            "description": f"Parameter {param_name}",
        }

        if param.default is inspect.Parameter.empty:
            required.append(param_name)

    return {"type": "object", "properties": properties, "required": required}


class FunctionTool:
    """
    Tool backed by a callable.

    Args:
        func: Sync or async callable taking keyword arguments
        name: Tool name (defaults to the function name)
        description: Tool description (defaults to the first docstring line)
        parameters_schema: Explicit JSON schema (defaults to one generated
            from the signature)
    """

    def __init__(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        parameters_schema: dict[str, Any] | None = None,
    ):
        self._func = func
        self._name = name or func.__name__
        doc = inspect.getdoc(func) or ""
        self._description = description or (doc.splitlines()[0] if doc else self._name)
        self._schema = parameters_schema or schema_from_signature(func)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self._schema

    async def execute(self, **kwargs: Any) -> Any:
        if inspect.iscoroutinefunction(self._func):
            return await self._func(**kwargs)
        return await asyncio.to_thread(self._func, **kwargs)

    def __repr__(self) -> str:
        return f"FunctionTool(name={self._name!r})"


def function_tool(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
):
    """
    Decorator turning a function into a FunctionTool.

    Example:
        >>> @function_tool
        ... async def get_weather(city: str) -> str:
        ...     '''Return the weather for a city.'''
        ...     return f"Sunny in {city}"
    """
    if func is None:
        return lambda f: FunctionTool(f, name=name, description=description)
    return FunctionTool(func, name=name, description=description)
