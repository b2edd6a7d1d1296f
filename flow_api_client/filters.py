"""
Helpers for building Flow search filters.

Filters are plain lists and dicts sent unmodified as the ``filters``
member of a search request, so hand-written expressions work just as
well.  These helpers only catch typos in relation names early.

>>> all_of(
...     condition("project", "is", entity_ref("Project", 70)),
...     any_of(condition("sg_status_list", "is", "ip"),
...            condition("sg_status_list", "is", "rev")),
... )
{'filter_operator': 'all', 'filters': [['project', 'is', {'type': 'Project', 'id': 70}], {'filter_operator': 'any', 'filters': [['sg_status_list', 'is', 'ip'], ['sg_status_list', 'is', 'rev']]}]}
"""

from __future__ import annotations

from typing import Any, Dict, List

RELATIONS = frozenset(
    {
        "is",
        "is_not",
        "less_than",
        "greater_than",
        "contains",
        "not_contains",
        "starts_with",
        "ends_with",
        "between",
        "not_between",
        "in",
        "not_in",
        "in_last",
        "not_in_last",
        "in_next",
        "not_in_next",
        "type_is",
        "type_is_not",
        "name_contains",
        "name_not_contains",
        "name_is",
    }
)


def condition(field: str, relation: str, value: Any) -> List[Any]:
    """Return a ``[field, relation, value]`` condition triple."""
    if not field:
        raise ValueError("field must not be empty")
    if relation not in RELATIONS:
        raise ValueError("unsupported filter relation %r" % relation)
    return [field, relation, value]


def entity_ref(entity_type: str, entity_id: int) -> Dict[str, Any]:
    """Return a link to another entity, as used in filters and create bodies."""
    return {"type": entity_type, "id": entity_id}


def _group(operator: str, filters: tuple) -> Dict[str, Any]:
    if not filters:
        raise ValueError("a filter group needs at least one filter")
    return {"filter_operator": operator, "filters": list(filters)}


def all_of(*filters: Any) -> Dict[str, Any]:
    """Group filters so that every one must match."""
    return _group("all", filters)


def any_of(*filters: Any) -> Dict[str, Any]:
    """Group filters so that at least one must match."""
    return _group("any", filters)
