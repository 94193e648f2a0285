"""Export decrypted secrets as env, JSON or YAML text.

This is the only place besides SecretStore.decrypt_secret() that handles
plaintext values. The caller decides where the output goes.
"""

import json
import re
from typing import Optional

import yaml

from .utils.logging import get_logger
from .vault.store import SecretStore

logger = get_logger(__name__)

EXPORT_FORMATS = ("env", "json", "yaml")

# Values matching this need quoting in env output
_ENV_NEEDS_QUOTES = re.compile(r"[\s#]")


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def format_env(values: dict[str, str]) -> str:
    """Render NAME=value lines, quoting values with whitespace or '#'."""
    lines = []
    for name, value in values.items():
        if _ENV_NEEDS_QUOTES.search(value):
            lines.append(f'{name}="{_escape(value)}"')
        else:
            lines.append(f"{name}={value}")
    return "\n".join(lines)


def format_json(values: dict[str, str]) -> str:
    """Render a pretty-printed JSON object."""
    return json.dumps(values, indent=2, ensure_ascii=False)


def format_yaml(values: dict[str, str]) -> str:
    """Render a YAML mapping with an export header."""
    body = yaml.safe_dump(
        values,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    return "# SecretForge export\n" + body.rstrip("\n")


_FORMATTERS = {
    "env": format_env,
    "json": format_json,
    "yaml": format_yaml,
}


def decrypt_secrets(
    store: SecretStore,
    project: str,
    environment: Optional[str] = None,
) -> dict[str, str]:
    """
    Decrypt every secret of a project into a name -> value mapping.

    When no environment is given and a name exists in several
    environments, the most recently created one wins.

    Raises:
        DecryptionError: If any value cannot be decrypted
    """
    values: dict[str, str] = {}
    for secret in store.list_secrets(project=project, environment=environment):
        if secret.name in values:
            logger.warning(
                f"Skipping {secret.name} from {secret.environment}: "
                "name already exported from a newer environment entry"
            )
            continue
        values[secret.name] = store.decrypt_secret(secret)
    return values


def export_secrets(
    store: SecretStore,
    project: str,
    environment: Optional[str] = None,
    fmt: str = "env",
) -> str:
    """
    Export a project's secrets as text.

    Args:
        store: Open secret store
        project: Project to export
        environment: Optional environment filter
        fmt: One of "env", "json", "yaml"

    Returns:
        Formatted export (empty string when nothing matches)

    Raises:
        ValueError: If fmt is not a supported format
        DecryptionError: If any value cannot be decrypted
    """
    formatter = _FORMATTERS.get(fmt)
    if formatter is None:
        raise ValueError(f"Unsupported export format: {fmt} (expected one of {EXPORT_FORMATS})")

    values = decrypt_secrets(store, project, environment)
    if not values:
        logger.warning(f"No secrets found to export for {project}")
        return ""

    logger.info(f"Exported {len(values)} secret(s) from {project} as {fmt}")
    return formatter(values)
