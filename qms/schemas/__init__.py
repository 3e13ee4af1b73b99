"""Request and response schemas (pydantic)."""
import json
from typing import Type, TypeVar

import pydantic
from flask import request

from qms.exceptions import ValidationError

M = TypeVar('M', bound=pydantic.BaseModel)


def parse_body(model: Type[M]) -> M:
    """
    Validate the JSON request body against a schema.

    Raises:
        ValidationError: body is not JSON or fails validation (details lists each problem)
    """
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError('Request body must be JSON')

    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError('Validation failed', details=json.loads(e.json(include_url=False)))


def dump(model: pydantic.BaseModel) -> dict:
    """JSON-ready dict with camelCase keys."""
    return model.model_dump(mode='json', by_alias=True)


def page_envelope(items, total: int, page: int, page_size: int) -> dict:
    return {
        'items': items,
        'total': total,
        'page': page,
        'pageSize': page_size,
    }
