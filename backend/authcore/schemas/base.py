"""Schema validation helpers"""

import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from authcore.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_input(model: Type[ModelT], data: Any) -> ModelT:
    """
    Validate caller input against a schema

    Pydantic validation errors are flattened into field-level details and
    raised as InvalidInputError.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            })
        logger.debug("Validation error: %s", errors)
        message = "Validation failed"
        if len(errors) == 1 and errors[0]["field"]:
            message = f"Invalid {errors[0]['field']}: {errors[0]['message']}"
        raise InvalidInputError(message, details={"errors": errors}) from exc
