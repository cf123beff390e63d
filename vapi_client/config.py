# vapi_client/config.py
"""
Client configuration loading.

Settings come from an optional YAML file, with ``${VAR}`` placeholders
expanded from the environment, and fall back to VAPI_PUBLIC_KEY and
VAPI_HOST. A ``.env.local`` file is loaded into the environment first.

Example YAML:

    vapi:
      public_key: ${VAPI_PUBLIC_KEY}
      host: api.vapi.ai
"""

import os
import re

import yaml
from dotenv import load_dotenv

from .exceptions import InvalidInputError
from .protocol import DEFAULT_HOST, Configuration

PUBLIC_KEY_ENV = "VAPI_PUBLIC_KEY"
HOST_ENV = "VAPI_HOST"


# ${NAME} placeholders; unset variables are kept verbatim
_PLACEHOLDER = re.compile(r"\$\{(\w+)\}")


def _substitute(match: re.Match) -> str:
    return os.environ.get(match.group(1), match.group(0))


def expand_env_vars(value):
    """Return a copy of a parsed YAML value with ``${NAME}`` placeholders filled in."""
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if isinstance(value, str):
        return _PLACEHOLDER.sub(_substitute, value)
    return value


def _load_yaml(path: str) -> dict:
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise InvalidInputError(f"Configuration file {path} must contain a mapping")
    return expand_env_vars(config)


def load_configuration(path: str | None = None) -> Configuration:
    """
    Load the client configuration.

    Args:
        path: Optional YAML file with a ``vapi`` section.

    Returns:
        Configuration: The resolved host and public key.

    Raises:
        InvalidInputError: If no public key is configured.
    """
    load_dotenv(".env.local")

    section: dict = {}
    if path is not None:
        section = _load_yaml(path).get("vapi") or {}

    public_key = section.get("public_key") or os.environ.get(PUBLIC_KEY_ENV)
    host = section.get("host") or os.environ.get(HOST_ENV) or DEFAULT_HOST

    # An unresolved placeholder means the variable was never set
    if not public_key or public_key.startswith("${"):
        raise InvalidInputError(f"{PUBLIC_KEY_ENV} is not set")

    return Configuration(public_key=public_key, host=host)
