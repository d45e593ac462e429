"""Input validation for Slack MCP tools

Tool arguments are declared as ``Annotated[type, Field(...)]`` parameters.
The validator turns a tool signature into a pydantic model and reports every
violated constraint as a single ``Validation failed: ...`` message.
"""

import inspect
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from mcp_slack.utils.errors import ToolValidationError

_MODEL_CACHE: Dict[Callable, Type[BaseModel]] = {}


class _ToolArguments(BaseModel):
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)


def _field_path(loc: tuple) -> str:
    path = ".".join(str(part) for part in loc)
    return path or "input"


def format_validation_error(exc: ValidationError) -> str:
    """Render a pydantic ValidationError as ``Validation failed: field: msg, ...``."""
    details = [f"{_field_path(err['loc'])}: {err['msg']}" for err in exc.errors()]
    return f"Validation failed: {', '.join(details)}"


def validate(model: Type[BaseModel], data: Optional[Dict[str, Any]]) -> BaseModel:
    """Validate ``data`` against ``model``.

    Raises:
        ToolValidationError: If any field fails validation.
    """
    try:
        return model.model_validate(data or {})
    except ValidationError as exc:
        raise ToolValidationError(format_validation_error(exc)) from exc


def is_valid(model: Type[BaseModel], data: Optional[Dict[str, Any]]) -> bool:
    try:
        model.model_validate(data or {})
    except ValidationError:
        return False
    return True


def get_errors(model: Type[BaseModel], data: Optional[Dict[str, Any]]) -> List[str]:
    """Return ``field: message`` strings for every failure, empty when valid."""
    try:
        model.model_validate(data or {})
    except ValidationError as exc:
        return [f"{_field_path(err['loc'])}: {err['msg']}" for err in exc.errors()]
    return []


def arguments_model(func: Callable) -> Type[BaseModel]:
    """Build (and cache) a pydantic model from a tool function's signature."""
    if func in _MODEL_CACHE:
        return _MODEL_CACHE[func]

    fields: Dict[str, Any] = {}
    for name, param in inspect.signature(func).parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = Any if param.annotation is inspect.Parameter.empty else param.annotation
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[name] = (annotation, default)

    model_name = "".join(part.title() for part in func.__name__.split("_")) + "Arguments"
    model = create_model(model_name, __base__=_ToolArguments, __module__=func.__module__, **fields)
    _MODEL_CACHE[func] = model
    return model


def validate_arguments(func: Callable, args: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate ``args`` against ``func``'s signature and return the coerced values."""
    model = arguments_model(func)
    instance = validate(model, args)
    return {name: getattr(instance, name) for name in model.model_fields}
