"""Configuration resolution for otco.

## Config files

A config file is YAML or JSON with this structure:

```yaml
github:
  api_url: https://api.github.com
output:
  format: table
pagination:
  per_page: 30
  max_pages: 10
```

### Resolution Order

1. ``--config PATH`` when given
2. ``otco.yaml``, ``otco.yml`` or ``otco.json`` in the current directory
3. ``config.yaml``, ``config.yml`` or ``config.json`` in the user config dir

Values from the file are then overridden by environment variables
(``GITHUB_API_URL``, ``OTCO_OUTPUT``, ``OTCO_PER_PAGE``) and finally by
command-line options.

## Credentials

The token comes from ``GITHUB_TOKEN`` or, failing that, from
``credentials.json`` in the user config dir, keyed by API host.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import yaml
from platformdirs import user_config_dir

from .errors import ConfigError
from .models.request import DEFAULT_PAGE_CAP, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_OUTPUT_FORMAT = "table"

# User-level config location
USER_CONFIG_DIR = Path(user_config_dir("otco"))

LOCAL_CONFIG_NAMES = ("otco.yaml", "otco.yml", "otco.json")
USER_CONFIG_NAMES = ("config.yaml", "config.yml", "config.json")
CREDENTIALS_FILE_NAME = "credentials.json"

CONFIG_KEYS = (
    "github.api_url",
    "output.format",
    "pagination.per_page",
    "pagination.max_pages",
)
_INT_KEYS = {"pagination.per_page", "pagination.max_pages"}


@dataclass
class OtcoContext:
    """Resolved settings for one invocation."""

    # Source of config
    config_path: Optional[Path] = None
    config_source: str = "none"  # "explicit", "directory", "user", "none"

    api_url: str = DEFAULT_API_URL
    output_format: str = DEFAULT_OUTPUT_FORMAT
    per_page: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_PAGE_CAP

    # Auth
    token: Optional[str] = None
    token_source: str = "none"  # "env", "credentials", "none"

    @property
    def host(self) -> str:
        return derive_host(self.api_url)

    def to_dict(self) -> dict:
        return {
            "config_source": self.config_source,
            "config_path": str(self.config_path) if self.config_path else None,
            "api_url": self.api_url,
            "output_format": self.output_format,
            "per_page": self.per_page,
            "max_pages": self.max_pages,
            "token_configured": self.token is not None,
            "token_source": self.token_source,
        }


def default_config() -> dict:
    return {
        "github": {"api_url": DEFAULT_API_URL},
        "output": {"format": DEFAULT_OUTPUT_FORMAT},
        "pagination": {"per_page": DEFAULT_PAGE_SIZE, "max_pages": DEFAULT_PAGE_CAP},
    }


def find_config_file(explicit: Optional[Path] = None, cwd: Optional[Path] = None) -> tuple[Optional[Path], str]:
    """Locate the config file to use and say where it came from."""
    if explicit is not None:
        explicit = Path(explicit)
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit, "explicit"

    directory = Path(cwd) if cwd else Path.cwd()
    for name in LOCAL_CONFIG_NAMES:
        candidate = directory / name
        if candidate.exists():
            return candidate, "directory"

    for name in USER_CONFIG_NAMES:
        candidate = USER_CONFIG_DIR / name
        if candidate.exists():
            return candidate, "user"

    return None, "none"


def load_config_file(path: Path) -> dict:
    """Parse a YAML or JSON config file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        if infer_format(path) == "json":
            data = json.loads(text or "{}")
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def resolve_context(
    config_path: Optional[Path] = None,
    api_url: Optional[str] = None,
    output_format: Optional[str] = None,
    per_page: Optional[int] = None,
    max_pages: Optional[int] = None,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> OtcoContext:
    """Resolve settings: file, then environment, then explicit arguments.

    Args:
        config_path: Explicit config file (``--config``)
        api_url: ``--api-url`` override
        output_format: ``--output`` override
        per_page: ``--per-page`` override
        max_pages: ``--pages`` override
        cwd: Directory to search for a local config file (default: cwd)
        env: Environment mapping (default: ``os.environ``)

    Returns:
        OtcoContext with resolved configuration
    """
    env = os.environ if env is None else env
    context = OtcoContext()

    # Step 1: config file
    path, source = find_config_file(config_path, cwd)
    if path is not None:
        data = load_config_file(path)
        context.config_path = path
        context.config_source = source
        context.api_url = get_config_value(data, "github.api_url") or context.api_url
        context.output_format = get_config_value(data, "output.format") or context.output_format
        file_per_page = get_config_value(data, "pagination.per_page")
        if file_per_page is not None:
            context.per_page = _as_int("pagination.per_page", file_per_page)
        file_max_pages = get_config_value(data, "pagination.max_pages")
        if file_max_pages is not None:
            context.max_pages = _as_int("pagination.max_pages", file_max_pages)

    # Step 2: environment
    if env.get("GITHUB_API_URL"):
        context.api_url = env["GITHUB_API_URL"]
    if env.get("OTCO_OUTPUT"):
        context.output_format = env["OTCO_OUTPUT"]
    if env.get("OTCO_PER_PAGE"):
        context.per_page = _as_int("OTCO_PER_PAGE", env["OTCO_PER_PAGE"])

    # Step 3: command line
    if api_url:
        context.api_url = api_url
    if output_format:
        context.output_format = output_format
    if per_page is not None:
        context.per_page = per_page
    if max_pages is not None:
        context.max_pages = max_pages

    context.output_format = context.output_format.lower()
    if not 1 <= context.per_page <= MAX_PAGE_SIZE:
        raise ConfigError(f"per_page must be between 1 and {MAX_PAGE_SIZE}, got {context.per_page}")
    if context.max_pages < 1:
        raise ConfigError(f"max_pages must be positive, got {context.max_pages}")

    # Step 4: credential
    token = env.get("GITHUB_TOKEN")
    if token:
        context.token = token
        context.token_source = "env"
    else:
        stored = load_token(context.host)
        if stored:
            context.token = stored
            context.token_source = "credentials"

    return context


def get_config_value(data: Mapping[str, Any], key: str) -> Any:
    """Read a dotted key such as ``github.api_url``; ``None`` if absent."""
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def set_config_value(data: dict, key: str, value: str) -> dict:
    """Set a dotted key, converting integer settings. Mutates and returns ``data``."""
    if key not in CONFIG_KEYS:
        raise ConfigError(
            f"Unknown or unsupported key: {key}",
            suggestions=[f"Supported keys: {', '.join(CONFIG_KEYS)}"],
        )
    section, name = key.split(".", 1)
    converted: Any = _as_int(key, value) if key in _INT_KEYS else value
    node = data.setdefault(section, {})
    if not isinstance(node, dict):
        node = data[section] = {}
    node[name] = converted
    return data


def write_config_file(path: Path, data: Mapping[str, Any]) -> Path:
    """Write ``data`` as YAML or JSON depending on the file extension."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if infer_format(path) == "json":
            json.dump(data, f, indent=2)
            f.write("\n")
        else:
            yaml.safe_dump(dict(data), f, default_flow_style=False, sort_keys=False)
    return path


def default_config_path(fmt: str = "yaml", directory: Optional[Path] = None) -> Path:
    """``otco.<ext>`` in ``directory`` (default: cwd)."""
    fmt = fmt.lower()
    if fmt not in ("yaml", "json"):
        raise ConfigError(f"Unsupported config format: {fmt}", suggestions=["Use yaml or json"])
    return (Path(directory) if directory else Path.cwd()) / f"otco.{fmt}"


def infer_format(path: Path) -> str:
    return "json" if Path(path).suffix.lower() == ".json" else "yaml"


def derive_host(api_url: str) -> str:
    """Host part of the API URL, used to key stored credentials."""
    host = urlparse(api_url).hostname
    return host or "api.github.com"


# --- Credentials ---


def credentials_file() -> Path:
    return USER_CONFIG_DIR / CREDENTIALS_FILE_NAME


def _load_credentials() -> dict:
    path = credentials_file()
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read credentials file {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def load_token(host: str) -> Optional[str]:
    """Stored token for ``host``, if any."""
    return _load_credentials().get(host)


def save_token(host: str, token: str) -> Path:
    """Store a token for ``host`` in the user credentials file."""
    data = _load_credentials()
    data[host] = token
    return _write_credentials(data)


def delete_token(host: str) -> bool:
    """Remove the stored token for ``host``. Returns whether one existed."""
    data = _load_credentials()
    if host not in data:
        return False
    del data[host]
    _write_credentials(data)
    return True


def _write_credentials(data: dict) -> Path:
    path = credentials_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    # Secure the file
    os.chmod(path, 0o600)
    return path


def get_context_help_message(context: OtcoContext) -> str:
    """Generate a short description of where settings came from."""
    lines = [f"otco context (from {context.config_source}):"]
    lines.append(f"  Config: {context.config_path or 'none'}")
    lines.append(f"  API URL: {context.api_url}")
    lines.append(f"  Output: {context.output_format}")
    lines.append(f"  Pagination: {context.per_page} per page, {context.max_pages} page(s) max")
    if context.token:
        lines.append(f"  Auth: token from {context.token_source}")
    else:
        lines.append("  Auth: NOT SET (export GITHUB_TOKEN or run: otco auth login)")
    return "\n".join(lines)


def _as_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None
