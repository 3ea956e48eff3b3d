"""
Schema Validator

Checks a structured-data record against the StructuredData shape before it
can become part of a persisted artifact. Missing optional collections are
filled with empty defaults; anything structurally wrong raises SchemaError
naming the first offending field.
"""

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from .dom import is_http_url
from .errors import SchemaError
from .models import StructuredData

logger = logging.getLogger(__name__)

Record = Union[StructuredData, Mapping[str, Any]]


def validate(record: Record, url: Optional[str] = None) -> StructuredData:
    """
    Validate a structured-data record.

    Args:
        record: StructuredData or a mapping with camelCase (or snake_case) keys
        url: Page URL, attached to the error for diagnosis

    Returns:
        A fully shaped StructuredData (validating it again returns an equal record)

    Raises:
        SchemaError: a required field is absent or has the wrong shape
    """
    if isinstance(record, StructuredData):
        record = record.model_dump(by_alias=True)
    elif not isinstance(record, Mapping):
        raise SchemaError("$", f"expected an object, got {type(record).__name__}", url=url)

    try:
        data = StructuredData.model_validate(record)
    except ValidationError as e:
        first = e.errors()[0]
        field = _field_path(first.get("loc", ()))
        raise SchemaError(field, first.get("msg", "invalid value"), url=url) from e

    for index, link in enumerate(data.links):
        if not is_http_url(link):
            raise SchemaError(f"links.{index}", f"not an absolute HTTP(S) URL: {link!r}", url=url)

    return data


def _field_path(loc: Any) -> str:
    parts = [str(part) for part in loc]
    return ".".join(parts) if parts else "$"
