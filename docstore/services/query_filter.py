"""
Query filter decoding

Turns the ``filter`` query-string value into a predicate dict:

    filter={'number': 2000}   ->   {"number": 2000}

Single quotes are replaced by double quotes before JSON parsing, so a quote
inside a string value cannot be expressed.

Filter text is trusted input. The decoded predicate reaches storage without
any restriction on operators or fields; this decoder is not a sanitizer and
must only be reachable by authenticated callers.
"""

import json
from typing import Optional

from docstore.core.exceptions import FilterSyntaxError

Predicate = dict


def decode(raw: Optional[str]) -> Optional[Predicate]:
    """
    Decode filter text.

    Returns:
        None when no filter was given, the predicate otherwise

    Raises:
        FilterSyntaxError: text is not a JSON object after quote normalization
    """
    if raw is None:
        return None

    normalized = raw.replace("'", '"')
    try:
        predicate = json.loads(normalized)
    except json.JSONDecodeError as e:
        raise FilterSyntaxError(f"Invalid filter: {e.msg} at position {e.pos}") from e

    if not isinstance(predicate, dict):
        raise FilterSyntaxError("Invalid filter: expected a JSON object")
    return predicate


def read_predicate(raw: Optional[str]) -> Predicate:
    """Read path: an absent filter matches every document"""
    predicate = decode(raw)
    return {} if predicate is None else predicate


def delete_predicate(raw: Optional[str]) -> Optional[Predicate]:
    """Destructive path: an absent filter matches nothing (None)"""
    return decode(raw)
