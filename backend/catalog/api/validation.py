"""
Shared validation utilities for API endpoints.
"""

import re
from typing import List, Optional
from fastapi import Query, HTTPException
from catalog.core.config import settings

# UUID-style identifiers as generated for categories and products
ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,36}$")


def validate_string_length(
    value: Optional[str],
    param_name: str = "parameter",
    max_length: int = 255,
    min_length: int = 0,
) -> Optional[str]:
    """
    Validate string parameter length.

    Args:
        value: The string to validate
        param_name: Name of the parameter for error messages
        max_length: Maximum allowed length
        min_length: Minimum allowed length

    Returns:
        The validated value, stripped of surrounding whitespace

    Raises:
        HTTPException: If validation fails
    """
    if value is not None:
        value = value.strip()
        if len(value) < min_length:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid {param_name}: minimum length is {min_length}",
            )
        if len(value) > max_length:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid {param_name}: maximum length is {max_length}",
            )
    return value


def validate_ids(values: Optional[List[str]], param_name: str = "id") -> List[str]:
    """Validate a list of identifiers from the query string, dropping duplicates."""
    result: List[str] = []
    for value in values or []:
        if not ID_PATTERN.match(value):
            raise HTTPException(
                status_code=400, detail=f"Invalid {param_name}: {value!r}"
            )
        if value not in result:
            result.append(value)
    return result


# Query parameter dependencies for common validations
CategoryIdsParam = Query(None, description="Category filter (repeatable)")
BrandIdsParam = Query(None, description="Brand filter (repeatable)")
SearchParam = Query(None, description="Case-insensitive text search")
PageParam = Query(0, ge=0, le=100000, description="Zero-based page number")
LimitParam = Query(
    settings.PRODUCTS_PAGE_SIZE,
    ge=1,
    le=settings.PRODUCTS_MAX_PAGE_SIZE,
    description="Maximum items to return",
)
