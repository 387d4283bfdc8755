"""Input parsing for engine operations.

Operations accept either an already-built input model or a plain mapping;
pydantic validation failures surface as ``InvalidInputError`` naming the
offending fields.
"""

from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from billing_engine.errors import InvalidInputError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_input(
    model_cls: Type[ModelT], data: Union[ModelT, Mapping[str, Any], None] = None, **kwargs
) -> ModelT:
    """Build ``model_cls`` from ``data`` and keyword overrides.

    Example:
        >>> item = parse_input(LineItemCreate, {"description": "Setup", "unit_price": 50})
        >>> item.quantity
        Decimal('1')
    """
    if isinstance(data, model_cls) and not kwargs:
        return data
    if isinstance(data, BaseModel):
        payload = data.model_dump(exclude_unset=True)
    else:
        payload = dict(data or {})
    payload.update(kwargs)
    try:
        return model_cls.model_validate(payload)
    except ValidationError as e:
        raise InvalidInputError.from_validation_error(e) from e


def require_positive_id(value: Any, field_name: str) -> int:
    """Reject identifiers that are not positive integers."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInputError(
            f"{field_name} must be a positive integer", fields=[field_name]
        )
    return value


def require_project_ids(project_ids: Optional[Iterable[Any]]) -> List[int]:
    """Validate a non-empty list of project ids, dropping duplicates in order."""
    ids: List[int] = []
    for value in project_ids or []:
        project_id = require_positive_id(value, "project_ids")
        if project_id not in ids:
            ids.append(project_id)
    if not ids:
        raise InvalidInputError("At least one project is required", fields=["project_ids"])
    return ids
