"""Configuration file reader: JSON (or TOML) document -> SyncConfig."""

from __future__ import annotations

import json
import logging
import os
import re
import tomllib
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from autorsync.exceptions import ConfigError
from autorsync.models import GlobalSettings, Mapping, SyncConfig
from autorsync.schemas.config import ConfigDocument
from autorsync.services.duration_service import parse_duration

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Same grammar as Go's os.ExpandEnv: ${...} up to the first brace, a single
# special character or digit, or a run of letters, digits and underscores.
_ENV_VAR_RE = re.compile(r"\$(?:\{([^}]*)\}|(\{)|([*#$@!?\-0-9])|([A-Za-z0-9_]+))")


def _expand_match(match: re.Match[str]) -> str:
    braced, bad_brace, special, plain = match.groups()
    if bad_brace is not None or braced == "":
        # ``${`` without a closing brace and ``${}`` are eaten.
        return ""
    name = braced if braced is not None else special or plain
    return os.environ.get(name, "")


def expand_env(value: str) -> str:
    """Replace ``$VAR`` and ``${VAR}`` with their environment values.

    Unlike ``os.path.expandvars``, unset variables expand to the empty string.
    ``$$`` and ``$1`` look up the variables named ``$`` and ``1``, and a ``$``
    not followed by a name is left as is.
    """
    return _ENV_VAR_RE.sub(_expand_match, value)


def _read_document(config_path: Path) -> Any:
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"failed to open config file {config_path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        if config_path.suffix == ".toml":
            return tomllib.loads(text)
        return json.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        msg = f"failed to parse config file {config_path}: {exc}"
        raise ConfigError(msg) from exc


def load_config(config_path: Path) -> SyncConfig:
    """Load, validate and environment-expand the configuration file.

    The config file path itself, exactly as passed in, is appended to every
    mapping's exclusions so that editing it never triggers a sync.

    Raises:
        ConfigError: If the file cannot be read or parsed, fails validation,
            or has a non-positive or malformed interval.
    """
    data = _read_document(config_path)
    try:
        document = ConfigDocument.model_validate(data)
    except ValidationError as exc:
        msg = f"invalid config file {config_path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        interval = parse_duration(document.settings.interval)
    except ValueError as exc:
        msg = f"failed to parse interval: {exc}"
        raise ConfigError(msg) from exc
    if interval <= 0:
        msg = f"interval must be positive, got {document.settings.interval!r}"
        raise ConfigError(msg)

    settings = GlobalSettings(
        interval=interval,
        rsync_args=tuple(expand_env(arg) for arg in document.settings.rsync_args),
    )

    mappings: list[Mapping] = []
    for index, entry in enumerate(document.mappings):
        source = expand_env(entry.source)
        target = expand_env(entry.target)
        if not source or not target:
            msg = (
                f"mapping {index} expands to an empty source or target "
                f"(source={entry.source!r}, target={entry.target!r})"
            )
            raise ConfigError(msg)
        mappings.append(
            Mapping(
                source=source,
                target=target,
                exclusions=(*entry.exclusions, str(config_path)),
            )
        )

    logger.debug(
        "Loaded %d mapping(s) from %s (interval=%.3fs)", len(mappings), config_path, interval
    )
    return SyncConfig(settings=settings, mappings=tuple(mappings))
