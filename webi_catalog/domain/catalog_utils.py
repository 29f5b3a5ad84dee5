from typing import Any, Iterable, Optional

def strip_nulls(value: Any) -> Any:
    """
    Recursively remove keys with value None from dictionaries.

    Lists are preserved, but their elements are also cleaned.
    """
    if isinstance(value, dict):
        return {k: strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_nulls(v) for v in value]
    return value

def match_text(value: Optional[str], keyword: str) -> bool:
    """
    Case-insensitive substring match of a single field against a search term.
    """
    if value is None:
        return False
    return keyword.lower() in value.lower()

def match_any(values: Iterable[Optional[str]], keyword: str) -> bool:
    """
    True if any of the given fields contains the keyword (OR semantics).
    """
    return any(match_text(v, keyword) for v in values)
