"""
Environment bootstrap for :class:`~flow_api_client.FlowClient`.

Credentials are read from the process environment and, where a
variable is not set there, from ``.env`` files.  The candidate files
are an explicit list; files that do not exist are skipped.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from dotenv import dotenv_values

from .exceptions import FlowConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "v1.1"
DEFAULT_ENV_FILES = (Path(".env"), Path("..") / ".env", Path("../..") / ".env")

ENV_SITE_URL = "FLOW_SITE_URL"
ENV_SCRIPT_NAME = "FLOW_SCRIPT_NAME"
ENV_SCRIPT_KEY = "FLOW_SCRIPT_KEY"
ENV_API_VERSION = "FLOW_API_VERSION"


@dataclass(frozen=True)
class FlowSettings:
    """Connection settings for a Flow site."""

    site_url: str
    script_name: str
    script_key: str
    api_version: str = DEFAULT_API_VERSION


def _read_env_files(env_files: Iterable[Union[str, Path]]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for env_file in env_files:
        path = Path(env_file)
        if not path.is_file():
            continue
        logger.debug("Loading settings from %s", path)
        for key, value in dotenv_values(path).items():
            # Earlier files take precedence
            if value is not None and key not in values:
                values[key] = value
    return values


def load_settings(
    env_files: Iterable[Union[str, Path]] = DEFAULT_ENV_FILES,
    environ: Optional[Mapping[str, str]] = None,
) -> FlowSettings:
    """Resolve :class:`FlowSettings` from the environment and ``.env`` files.

    Parameters
    ----------
    env_files : iterable of path, optional
        ``.env`` files to consult, in order of precedence.  Defaults to
        ``.env``, ``../.env`` and ``../../.env``.
    environ : mapping, optional
        Variables that take precedence over every file.  Defaults to
        ``os.environ``, which is never modified.

    Raises
    ------
    FlowConfigError
        If ``FLOW_SITE_URL``, ``FLOW_SCRIPT_NAME`` or ``FLOW_SCRIPT_KEY``
        is missing or empty.
    """
    if environ is None:
        environ = os.environ
    values = _read_env_files(env_files)
    values.update({k: v for k, v in environ.items() if v})

    for name in (ENV_SITE_URL, ENV_SCRIPT_NAME, ENV_SCRIPT_KEY):
        if not values.get(name):
            raise FlowConfigError(f"{name} environment variable is required")

    return FlowSettings(
        site_url=values[ENV_SITE_URL],
        script_name=values[ENV_SCRIPT_NAME],
        script_key=values[ENV_SCRIPT_KEY],
        api_version=values.get(ENV_API_VERSION) or DEFAULT_API_VERSION,
    )
