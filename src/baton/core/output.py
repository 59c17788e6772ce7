"""
baton/core/output.py

Structured-output contracts for agents.

An agent that declares an OutputSchema finishes only when the provider
returns a structured value that validates against it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from baton.errors import OutputValidationError

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "object": (dict,),
    "array": (list, tuple),
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "null": (type(None),),
}


class OutputSchema:
    """
    Wraps either a Pydantic model or a raw JSON Schema.

    With a model, validate() returns a model instance built from the
    provider's value (a dict or a JSON string). With a raw schema, only the
    top-level type and required keys are checked and the value is returned
    as-is.
    """

    def __init__(
        self,
        model: type[BaseModel] | None = None,
        json_schema: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> None:
        if model is None and json_schema is None:
            raise ValueError("OutputSchema needs a pydantic model or a JSON schema")
        self._model = model
        self._adapter = TypeAdapter(model) if model is not None else None
        self._json_schema = json_schema
        self._name = name or (model.__name__ if model is not None else "output")

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> OutputSchema:
        return cls(model=model)

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> type[BaseModel] | None:
        return self._model

    def json_schema(self) -> dict[str, Any]:
        if self._model is not None:
            return self._model.model_json_schema()
        return dict(self._json_schema or {})

    def validate(self, value: Any) -> Any:
        if self._adapter is not None:
            try:
                if isinstance(value, (str, bytes)):
                    return self._adapter.validate_json(value)
                return self._adapter.validate_python(value)
            except ValidationError as e:
                raise OutputValidationError(self._name, e.errors()) from e
        return self._validate_raw(value)

    def _validate_raw(self, value: Any) -> Any:
        schema = self._json_schema or {}
        expected = schema.get("type")
        if expected in _JSON_TYPES:
            ok = isinstance(value, _JSON_TYPES[expected])
            if expected in ("integer", "number") and isinstance(value, bool):
                ok = False
            if not ok:
                raise OutputValidationError(
                    self._name, f"expected {expected}, got {type(value).__name__}"
                )
        if isinstance(value, dict):
            missing = [k for k in schema.get("required", []) if k not in value]
            if missing:
                raise OutputValidationError(self._name, f"missing required keys {missing}")
        return value

    def __repr__(self) -> str:
        return f"OutputSchema(name={self._name!r})"
