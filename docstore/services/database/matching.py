"""
Mongo-style predicate and update evaluation for the memory backend.

Supported query operators:
    $eq $ne $gt $gte $lt $lte $in $nin $exists $regex $size $all $elemMatch
    $and $or $nor $not
Supported update operators:
    $set $unset $inc $push $pull
"""

import copy
import re
from typing import Any

from docstore.core.exceptions import FilterSyntaxError, ValidationError


COMPARATORS = {
    "$eq", "$ne", "$gt", "$gte", "$lt", "$lte",
    "$in", "$nin", "$exists", "$regex", "$options", "$size",
    "$all", "$elemMatch", "$not",
}
LOGICAL = {"$and", "$or", "$nor"}

_MISSING = object()


# =============================================================================
# Paths
# =============================================================================


def deep_get(doc: Any, dotted_key: str, default: Any = _MISSING) -> Any:
    cur = doc
    for part in dotted_key.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        elif isinstance(cur, list) and part.isdigit() and int(part) < len(cur):
            cur = cur[int(part)]
        else:
            return default
    return cur


def deep_set(doc: dict, dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cur = doc
    for part in parts[:-1]:
        if not isinstance(cur.get(part), dict):
            cur[part] = {}
        cur = cur[part]
    cur[parts[-1]] = value


def deep_unset(doc: dict, dotted_key: str) -> None:
    parts = dotted_key.split(".")
    cur = doc
    for part in parts[:-1]:
        if not isinstance(cur.get(part), dict):
            return
        cur = cur[part]
    cur.pop(parts[-1], None)


# =============================================================================
# Query evaluation
# =============================================================================


def match_query(doc: dict, query: dict) -> bool:
    """True when ``doc`` satisfies every clause of ``query``"""
    if not isinstance(query, dict):
        raise FilterSyntaxError("Query must be an object")
    for key, cond in query.items():
        if key in LOGICAL:
            if not _eval_logical(doc, key, cond):
                return False
        elif key.startswith("$"):
            raise FilterSyntaxError(f"Unsupported operator: {key}")
        elif not _eval_field(deep_get(doc, key), cond):
            return False
    return True


def _eval_logical(doc: dict, op: str, clauses: Any) -> bool:
    if not isinstance(clauses, list) or not clauses:
        raise FilterSyntaxError(f"{op} requires a non-empty array")
    results = [match_query(doc, clause) for clause in clauses]
    if op == "$and":
        return all(results)
    if op == "$or":
        return any(results)
    return not any(results)


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, dict) and bool(cond) and all(k.startswith("$") for k in cond)


def _eval_field(value: Any, cond: Any) -> bool:
    if _is_operator_dict(cond):
        for op, arg in cond.items():
            if op not in COMPARATORS:
                raise FilterSyntaxError(f"Unsupported operator: {op}")
            if op == "$options":
                continue
            if op == "$regex":
                arg = {"pattern": arg, "options": cond.get("$options", "")}
            if not _eval_op(value, op, arg):
                return False
        return True
    return _equals(value, cond)


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _compare(value: Any, arg: Any, op: str) -> bool:
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if candidate is _MISSING or candidate is None:
            continue
        try:
            if op == "$gt" and candidate > arg:
                return True
            if op == "$gte" and candidate >= arg:
                return True
            if op == "$lt" and candidate < arg:
                return True
            if op == "$lte" and candidate <= arg:
                return True
        except TypeError:
            # Mongo never matches across incomparable BSON types
            continue
    return False


def _eval_op(value: Any, op: str, arg: Any) -> bool:
    if op == "$eq":
        return _equals(value, arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(value, arg, op)
    if op in ("$in", "$nin"):
        if not isinstance(arg, list):
            raise FilterSyntaxError(f"{op} requires an array")
        found = any(_equals(value, candidate) for candidate in arg)
        return found if op == "$in" else not found
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    if op == "$regex":
        if not isinstance(value, str):
            return False
        pattern, flags = _parse_regex(arg)
        return re.search(pattern, value, flags) is not None
    if op == "$size":
        return isinstance(value, list) and len(value) == arg
    if op == "$all":
        return isinstance(value, list) and all(item in value for item in arg)
    if op == "$elemMatch":
        if not isinstance(value, list):
            return False
        return any(
            match_query(elem, arg) if isinstance(elem, dict) and not _is_operator_dict(arg)
            else _eval_field(elem, arg)
            for elem in value
        )
    if op == "$not":
        return not _eval_field(value, arg)
    return False


def _parse_regex(arg: dict) -> tuple[str, int]:
    pattern = arg.get("pattern", "")
    if not isinstance(pattern, str):
        raise FilterSyntaxError("$regex must be a string")
    flags = 0
    options = arg.get("options", "") or ""
    if "i" in options:
        flags |= re.IGNORECASE
    if "m" in options:
        flags |= re.MULTILINE
    if "s" in options:
        flags |= re.DOTALL
    return pattern, flags


# =============================================================================
# Update application
# =============================================================================


def is_update_document(update: dict) -> bool:
    """True when ``update`` uses operators, False for a plain replacement"""
    return bool(update) and all(k.startswith("$") for k in update)


def apply_update(doc: dict, update: dict) -> dict:
    """
    Return a new document with the update operators applied.

    Raises:
        ValidationError: unsupported operator or operand
    """
    if not is_update_document(update):
        raise ValidationError("Update must be a document of update operators")

    new_doc = copy.deepcopy(doc)
    for op, changes in update.items():
        if not isinstance(changes, dict):
            raise ValidationError(f"{op} requires an object")
        if op == "$set":
            for k, v in changes.items():
                deep_set(new_doc, k, copy.deepcopy(v))
        elif op == "$unset":
            for k in changes:
                deep_unset(new_doc, k)
        elif op == "$inc":
            for k, v in changes.items():
                current = deep_get(new_doc, k, 0)
                if not isinstance(current, (int, float)) or not isinstance(v, (int, float)):
                    raise ValidationError(f"$inc requires numeric values for '{k}'")
                deep_set(new_doc, k, current + v)
        elif op == "$push":
            for k, v in changes.items():
                current = deep_get(new_doc, k, None)
                if current is None:
                    current = []
                if not isinstance(current, list):
                    raise ValidationError(f"$push target '{k}' is not an array")
                deep_set(new_doc, k, current + [copy.deepcopy(v)])
        elif op == "$pull":
            for k, cond in changes.items():
                current = deep_get(new_doc, k, None)
                if not isinstance(current, list):
                    continue
                deep_set(new_doc, k, [item for item in current if not _pull_matches(item, cond)])
        else:
            raise ValidationError(f"Unsupported update operator: {op}")
    return new_doc


def _pull_matches(item: Any, cond: Any) -> bool:
    if isinstance(cond, dict) and isinstance(item, dict) and not _is_operator_dict(cond):
        return match_query(item, cond)
    return _eval_field(item, cond)
