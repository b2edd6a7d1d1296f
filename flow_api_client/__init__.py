"""
Python client for the Flow Production Tracking (ShotGrid) REST API.

This package provides a `FlowClient` class that authenticates with an
API script's name and key using the OAuth2 client-credentials grant,
keeps the access token fresh, and exposes entity searches, lookups
and creations that return flat dictionaries.

Examples
--------

```python
from flow_api_client import FlowClient
from flow_api_client.filters import condition, entity_ref

# Reads FLOW_SITE_URL, FLOW_SCRIPT_NAME and FLOW_SCRIPT_KEY from the
# environment or a nearby .env file
client = FlowClient.from_env()

shots = client.find_entities(
    "shots",
    [condition("project", "is", entity_ref("Project", 70))],
    ["code", "sg_status_list"],
)

user = client.get_user_by_login("jdoe")
tasks = client.get_tasks_for_user(user["id"])
```

Errors are raised as subclasses of `FlowError`; none of them is
retried by the client.
"""

from .client import FlowClient, TokenSession
from .config import FlowSettings, load_settings
from .entity import Entity, flatten_entity, unwrap_relationship
from .exceptions import (
    FlowAPIError,
    FlowAuthError,
    FlowConfigError,
    FlowDecodeError,
    FlowError,
    FlowNotFoundError,
    FlowTransportError,
)

__all__ = [
    "FlowClient",
    "TokenSession",
    "FlowSettings",
    "load_settings",
    "Entity",
    "flatten_entity",
    "unwrap_relationship",
    "FlowError",
    "FlowConfigError",
    "FlowTransportError",
    "FlowAuthError",
    "FlowAPIError",
    "FlowDecodeError",
    "FlowNotFoundError",
]
