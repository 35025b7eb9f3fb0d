"""Firestore serialization helpers.

Handles conversion between Python snake_case and Firestore camelCase, and
validation of raw documents at the store boundary.
"""

import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def to_snake(string: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", string).lower()


def model_to_firestore(model: BaseModel, exclude_none: bool = False) -> dict[str, Any]:
    """Convert a pydantic model to Firestore document format.

    - Converts field names from snake_case to camelCase, including maps
      nested inside lists (schedule task lists)
    - Leaves datetimes untouched so Firestore stores them as timestamps
    - Converts enums to their string values
    """
    data = model.model_dump(mode="python", exclude_none=exclude_none)
    return _convert_keys(data, to_camel)


def firestore_to_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Convert Firestore document to snake_case dict for pydantic parsing."""
    return _convert_keys(data, to_snake)


def _convert_keys(data: dict[str, Any], convert) -> dict[str, Any]:
    return {convert(key): _convert_value(value, convert) for key, value in data.items()}


def _convert_value(value: Any, convert) -> Any:
    if isinstance(value, dict):
        return _convert_keys(value, convert)
    if isinstance(value, list):
        return [_convert_value(item, convert) for item in value]
    return value


@dataclass(frozen=True)
class Loaded(Generic[M]):
    """A document read from Firestore, either parsed or skipped with a reason."""

    doc_id: str
    model: M | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.model is not None


def load_document(model_cls: type[M], doc_id: str, data: dict[str, Any] | None) -> Loaded[M]:
    """Validate a raw Firestore document against a model."""
    if data is None:
        return Loaded(doc_id=doc_id, error="document has no data")
    try:
        model = model_cls.model_validate(firestore_to_dict(data))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        return Loaded(doc_id=doc_id, error=f"invalid {model_cls.__name__}: {problems}")
    return Loaded(doc_id=doc_id, model=model)
