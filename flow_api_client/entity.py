"""
Flattening of the JSON:API style envelope returned by Flow.

Each entity in a response looks like::

    {"id": 1234, "type": "Shot",
     "attributes": {"code": "sh010"},
     "relationships": {"project": {"data": {"type": "Project", "id": 70}}}}

and is turned into a single flat dictionary::

    {"id": 1234, "type": "Shot", "code": "sh010",
     "project": {"type": "Project", "id": 70}}

Relationship keys are merged after attribute keys, so a relationship
wins when both sections carry the same key.
"""

from __future__ import annotations

from typing import Any, Dict, List

from .exceptions import FlowDecodeError

Entity = Dict[str, Any]


def unwrap_relationship(value: Any) -> Any:
    """Return the related entity (or list of entities) held by ``value``.

    The server is inconsistent about relationship values: sometimes
    they hold the related entity directly and sometimes it is nested
    one level down under ``data`` (next to ``links``).  Both shapes
    are normalised to the bare value.
    """
    if isinstance(value, dict) and "data" in value:
        return value["data"]
    return value


def flatten_entity(item: Dict[str, Any]) -> Entity:
    """Merge ``id``, ``type``, attributes and relationships into one dict."""
    if not isinstance(item, dict):
        raise FlowDecodeError(
            f"Expected an entity object, got {type(item).__name__}"
        )
    if item.get("id") is None or item.get("type") is None:
        raise FlowDecodeError("Entity object is missing 'id' or 'type'")
    attributes = item.get("attributes")
    if attributes is None:
        attributes = {}
    relationships = item.get("relationships")
    if relationships is None:
        relationships = {}
    if not isinstance(attributes, dict) or not isinstance(relationships, dict):
        raise FlowDecodeError("Entity attributes and relationships must be objects")

    entity: Entity = {"id": item["id"], "type": item["type"]}
    entity.update(attributes)
    for key, value in relationships.items():
        entity[key] = unwrap_relationship(value)
    return entity


def flatten_envelope(payload: Any, *, many: bool) -> Any:
    """Flatten the ``data`` member of a decoded response body.

    Returns a list of entities when ``many`` is true, otherwise a
    single entity.  Raises :class:`FlowDecodeError` when the payload
    does not have the expected shape.
    """
    if not isinstance(payload, dict) or "data" not in payload:
        raise FlowDecodeError("Response body has no 'data' member")
    data = payload["data"]
    if many:
        if not isinstance(data, list):
            raise FlowDecodeError("Expected 'data' to be a list of entities")
        entities: List[Entity] = [flatten_entity(item) for item in data]
        return entities
    return flatten_entity(data)
