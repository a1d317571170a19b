"""
Maps exceptions onto stable, client-safe error payloads.
"""

import logging
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError

from ..domain.exceptions import BusinessRuleViolation


logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    SYSTEM = "system"


class ErrorResponse(BaseModel):
    category: ErrorCategory
    code: str
    message: str
    details: List[Dict[str, Any]] = Field(default_factory=list)


def describe_error(exc: BaseException) -> ErrorResponse:
    """
    Convert an exception into an error payload.

    Malformed input and rule violations keep their message; anything else is
    logged with its traceback and reported generically.
    """
    if isinstance(exc, ValidationError):
        logger.warning("Validation failed: %s", exc)
        return ErrorResponse(
            category=ErrorCategory.VALIDATION,
            code="invalid_input",
            message="Validation failed",
            details=[
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ],
        )

    if isinstance(exc, BusinessRuleViolation):
        return ErrorResponse(
            category=ErrorCategory.BUSINESS_RULE,
            code=exc.code,
            message=exc.message,
        )

    logger.error("Unhandled exception occurred", exc_info=exc)
    return ErrorResponse(
        category=ErrorCategory.SYSTEM,
        code="internal_error",
        message="An unexpected error occurred",
    )
