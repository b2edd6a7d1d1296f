"""
Client implementation for the Flow Production Tracking REST API.

This module defines the :class:`FlowClient` class which authenticates
against a Flow (formerly ShotGrid) site using the OAuth2 client
credentials grant with an API script's name and key, and performs
entity searches, lookups and creations against the REST API.  The
client keeps the access token for the duration given by
``expires_in`` in the token response and fetches a new one when the
current token is within a minute of expiring.

Usage
-----

.. code-block:: python

    from flow_api_client import FlowClient

    client = FlowClient(
        site_url="https://yoursite.shotgunstudio.com",
        script_name="my_script",
        script_key="shhsecret",
    )

    shots = client.find_entities(
        "shots",
        [["sg_status_list", "is", "ip"]],
        ["code", "description"],
    )
    for shot in shots:
        print(shot["id"], shot["code"])

Every entity returned by the client is a flat dictionary holding
``id``, ``type`` and the requested fields, with relationship values
reduced to the linked entity (``{"type": ..., "id": ...}``).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import requests

from .config import DEFAULT_API_VERSION, DEFAULT_ENV_FILES, load_settings
from .entity import Entity, flatten_envelope, unwrap_relationship
from .exceptions import (
    FlowAPIError,
    FlowAuthError,
    FlowConfigError,
    FlowDecodeError,
    FlowNotFoundError,
    FlowTransportError,
)
from .filters import condition, entity_ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenSession:
    """The token state of a client.

    A refresh replaces the whole object, never individual fields.
    ``expiry`` is in epoch seconds.
    """

    access_token: str = field(default="", repr=False)
    refresh_token: str = field(default="", repr=False)
    token_type: str = ""
    expiry: float = 0.0


class FlowClient:
    """A simple client for the Flow Production Tracking REST API.

    Parameters
    ----------
    site_url : str
        Your Flow site URL, e.g. ``"https://yoursite.shotgunstudio.com"``.
    script_name : str
        Name of the API script, used as the OAuth ``client_id``.
    script_key : str
        Key of the API script, used as the OAuth ``client_secret``.
    api_version : str, optional
        REST API version segment.  Defaults to ``"v1.1"``.
    session : requests.Session, optional
        Transport to send requests with.  When omitted the client
        creates its own session and closes it in :meth:`close`.
    timeout : float, optional
        Timeout in seconds applied to every HTTP request.  Defaults
        to 30 seconds.
    clock : callable, optional
        Returns the current time in epoch seconds.  Defaults to
        :func:`time.time`.

    Notes
    -----
    The client authenticates as soon as it is constructed.  The token
    is reused until it is within 60 seconds of expiring, at which
    point the next request re-authenticates with the script
    credentials before it is sent.  Checking and refreshing the token
    is serialised with a lock, so one client may be shared between
    threads.
    """

    _TOKEN_REFRESH_MARGIN = 60
    _SEARCH_CONTENT_TYPE = "application/vnd+shotgun.api3_array+json"
    _USER_FIELDS = ["id", "name", "login", "email"]

    def __init__(
        self,
        *,
        site_url: str,
        script_name: str,
        script_key: str,
        api_version: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not site_url:
            raise FlowConfigError("site URL is required")
        if not script_name:
            raise FlowConfigError("script name is required")
        if not script_key:
            raise FlowConfigError("script key is required")

        self.site_url = site_url.rstrip("/")
        self.script_name = script_name
        self.script_key = script_key
        self.api_version = api_version or DEFAULT_API_VERSION
        self.timeout = timeout

        self._owns_session = session is None
        self._session = requests.Session() if session is None else session
        self._clock = clock

        self._token = TokenSession()
        self._token_lock = threading.Lock()

        self.authenticate()

    @classmethod
    def from_env(
        cls,
        env_files: Iterable[Union[str, Path]] = DEFAULT_ENV_FILES,
        environ: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> "FlowClient":
        """Create a client from ``FLOW_*`` environment variables.

        See :func:`flow_api_client.config.load_settings` for how the
        variables and ``.env`` files are resolved.  Extra keyword
        arguments are passed to the constructor.
        """
        settings = load_settings(env_files, environ)
        return cls(
            site_url=settings.site_url,
            script_name=settings.script_name,
            script_key=settings.script_key,
            api_version=settings.api_version,
            **kwargs,
        )

    def close(self) -> None:
        """Close the underlying HTTP session if the client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "FlowClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    @property
    def token(self) -> TokenSession:
        """The current token state."""
        return self._token

    def authenticate(self) -> None:
        """Exchange the script credentials for a new access token.

        Raises
        ------
        FlowAuthError
            If the token endpoint cannot be reached, answers with a
            status other than 200, or returns an unusable body.
        """
        with self._token_lock:
            self._token = self._request_token()

    def _request_token(self) -> TokenSession:
        url = self._api_url("auth/access_token")
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.script_name,
            "client_secret": self.script_key,
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        logger.debug("Requesting access token from %s", url)
        try:
            response = self._session.post(
                url, data=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise FlowAuthError(f"Failed to connect to auth server: {exc}") from exc

        if response.status_code != 200:
            logger.warning(
                "Authentication for script %s failed with status %s",
                self.script_name,
                response.status_code,
            )
            raise FlowAuthError(
                f"Authentication failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token_info = response.json()
        except ValueError as exc:
            raise FlowAuthError(
                f"Failed to parse token response: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        access_token = token_info.get("access_token") if isinstance(token_info, dict) else None
        if not access_token:
            raise FlowAuthError(
                "Authentication response did not contain an access_token",
                status_code=response.status_code,
                body=response.text,
            )
        expires_in = token_info.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            raise FlowAuthError(
                "Authentication response did not contain a numeric expires_in",
                status_code=response.status_code,
                body=response.text,
            )

        logger.info(
            "Authenticated script %s; token valid for %s seconds",
            self.script_name,
            expires_in,
        )
        return TokenSession(
            access_token=access_token,
            refresh_token=token_info.get("refresh_token") or "",
            token_type=token_info.get("token_type") or "",
            expiry=self._clock() + float(expires_in),
        )

    def get_valid_token(self) -> str:
        """Return an access token that is valid for at least 60 seconds.

        Re-authenticates first when the current token expires within
        the next 60 seconds or has already expired.
        """
        with self._token_lock:
            if self._clock() + self._TOKEN_REFRESH_MARGIN >= self._token.expiry:
                logger.debug("Access token expired or about to expire; refreshing")
                self._token = self._request_token()
            return self._token.access_token

    def is_authenticated(self) -> bool:
        """Return whether a token is held and has not yet expired.

        This never triggers a refresh.
        """
        token = self._token
        return bool(token.access_token) and self._clock() < token.expiry

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _api_url(self, path: str) -> str:
        return f"{self.site_url}/api/{self.api_version}/{path.lstrip('/')}"

    @staticmethod
    def _fields_params(fields: Optional[Sequence[str]]) -> Optional[Dict[str, str]]:
        if not fields:
            return None
        if isinstance(fields, str):
            fields = [fields]
        return {"fields": ",".join(fields)}

    def _request(
        self,
        method: str,
        path: str,
        *,
        expected_status: int,
        many: bool = False,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Perform an authenticated request and flatten the response.

        Parameters
        ----------
        method : str
            The HTTP verb.
        path : str
            Endpoint path below ``/api/<version>/``.
        expected_status : int
            The only status code treated as success.
        many : bool, optional
            Whether the response envelope holds a list of entities.
        params : dict, optional
            Query parameters to include in the request.
        json : object, optional
            A JSON-serialisable request body.
        headers : dict, optional
            Additional HTTP headers.  The ``Authorization`` header is
            always set by the client.

        Returns
        -------
        list of Entity or Entity
            The flattened entities of the response.

        Raises
        ------
        FlowAuthError
            If a token refresh fails.  When the token endpoint could
            not be reached ``status_code`` is ``None`` and the
            ``requests`` exception is the ``__cause__``.
        FlowTransportError
            If the server could not be reached.
        FlowAPIError
            If the response status is not ``expected_status``.
        FlowDecodeError
            If the response body is not the expected JSON envelope.
        """
        url = self._api_url(path)
        token = self.get_valid_token()
        req_headers = {"Accept": "application/json"}
        if headers:
            req_headers.update(headers)
        req_headers["Authorization"] = f"Bearer {token}"

        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=req_headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise FlowTransportError(f"Failed to connect to {url}: {exc}") from exc

        if response.status_code != expected_status:
            logger.warning("%s %s failed with status %s", method, url, response.status_code)
            raise FlowAPIError(
                f"{response.status_code} Error for {url}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return flatten_envelope(response.json(), many=many)
        except (ValueError, FlowDecodeError) as exc:
            raise FlowDecodeError(
                f"Failed to parse response from {url}: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    # ------------------------------------------------------------------
    # Entity operations
    # ------------------------------------------------------------------
    def find_entities(
        self,
        entity_type: str,
        filters: Optional[Any] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Entity]:
        """Search for entities of ``entity_type``.

        Parameters
        ----------
        entity_type : str
            The REST entity name, e.g. ``"shots"`` or ``"human_users"``.
        filters : list or dict, optional
            A filter expression sent unmodified; see
            :mod:`flow_api_client.filters`.  ``None`` matches everything.
        fields : sequence of str, optional
            Fields to return for each entity.  A single field name may
            be given as a plain string.

        Returns
        -------
        list of Entity
            The matching entities; empty when nothing matches.

        Raises
        ------
        FlowAuthError
            If the token had to be refreshed and that failed, including
            when the token endpoint could not be reached
            (``status_code is None``).
        FlowTransportError
            If the search endpoint could not be reached.
        FlowAPIError
            If the search endpoint answered with a status other than 200.
        FlowDecodeError
            If the response body is not the expected JSON envelope.
        """
        body = {"filters": [] if filters is None else filters}
        return self._request(
            "POST",
            f"entity/{entity_type}/_search",
            expected_status=200,
            many=True,
            params=self._fields_params(fields),
            json=body,
            headers={"Content-Type": self._SEARCH_CONTENT_TYPE},
        )

    def get_entity(
        self,
        entity_type: str,
        entity_id: int,
        fields: Optional[Sequence[str]] = None,
    ) -> Entity:
        """Fetch a single entity by id."""
        return self._request(
            "GET",
            f"entity/{entity_type}/{entity_id}",
            expected_status=200,
            params=self._fields_params(fields),
        )

    def create_entity(self, entity_type: str, data: Dict[str, Any]) -> Entity:
        """Create an entity and return it as stored by the server.

        ``data`` maps field names to values; link fields take entity
        references such as ``{"type": "Project", "id": 70}``.
        """
        return self._request(
            "POST",
            f"entity/{entity_type}",
            expected_status=201,
            json=data,
            headers={"Content-Type": "application/json"},
        )

    # ------------------------------------------------------------------
    # Convenience queries
    # ------------------------------------------------------------------
    def _find_user(self, field_name: str, value: str) -> Entity:
        users = self.find_entities(
            "human_users", [condition(field_name, "is", value)], self._USER_FIELDS
        )
        if not users:
            raise FlowNotFoundError(f"user not found with {field_name}: {value}")
        return users[0]

    def get_user_by_login(self, login: str) -> Entity:
        """Return the human user with ``login``.

        Raises :class:`FlowNotFoundError` when there is no such user.
        """
        return self._find_user("login", login)

    def get_user_by_name(self, name: str) -> Entity:
        """Return the first human user called ``name``.

        Raises :class:`FlowNotFoundError` when there is no such user.
        """
        return self._find_user("name", name)

    def get_shots(
        self,
        project_id: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Entity]:
        """Return all shots, or those of one project."""
        filters = None
        if project_id is not None and project_id > 0:
            filters = [condition("project", "is", entity_ref("Project", project_id))]
        return self.find_entities(
            "shots", filters, fields or ["code", "description", "sg_status_list"]
        )

    def get_tasks_for_shot(
        self, shot_id: int, fields: Optional[Sequence[str]] = None
    ) -> List[Entity]:
        filters = [condition("entity", "is", entity_ref("Shot", shot_id))]
        return self.find_entities(
            "tasks", filters, fields or ["content", "sg_status_list", "task_assignees"]
        )

    def get_tasks_for_user(
        self, user_id: int, fields: Optional[Sequence[str]] = None
    ) -> List[Entity]:
        filters = [condition("task_assignees", "is", entity_ref("HumanUser", user_id))]
        return self.find_entities(
            "tasks",
            filters,
            fields or ["content", "entity", "sg_status_list", "project"],
        )

    def get_user_shot_tasks(
        self,
        user_id: int,
        shot_id: int,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Entity]:
        """Return the tasks on ``shot_id`` assigned to ``user_id``."""
        filters = [
            condition("entity", "is", entity_ref("Shot", shot_id)),
            condition("task_assignees", "is", entity_ref("HumanUser", user_id)),
        ]
        return self.find_entities(
            "tasks", filters, fields or ["content", "sg_status_list", "task_assignees"]
        )

    def get_shots_for_user(
        self, user_id: int, fields: Optional[Sequence[str]] = None
    ) -> List[Entity]:
        """Return the shots that have at least one task assigned to ``user_id``.

        This takes two searches: one for the user's tasks and one for
        the shots they are linked to.  The second search is skipped
        when none of the tasks is linked to a shot.
        """
        tasks = self.get_tasks_for_user(user_id, ["entity"])

        shot_ids = set()
        for task in tasks:
            linked = unwrap_relationship(task.get("entity"))
            if not isinstance(linked, dict) or linked.get("type") != "Shot":
                continue
            shot_id = linked.get("id")
            if isinstance(shot_id, (int, float)) and not isinstance(shot_id, bool):
                shot_ids.add(int(shot_id))

        if not shot_ids:
            logger.debug("User %s has no tasks linked to shots", user_id)
            return []

        filters = [condition("id", "in", sorted(shot_ids))]
        return self.find_entities(
            "shots",
            filters,
            fields or ["code", "description", "sg_status_list", "project"],
        )
