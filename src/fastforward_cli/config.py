"""Configuration for a fast-forward invocation.

Values come, highest precedence first, from CLI options (which also read the
``INPUT_*`` variables a workflow action sets), the ``fast_forward`` section
of ``.github/fast-forward.yaml`` in the work directory, and the defaults
below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from fastforward_cli.core.git_ops import DEFAULT_NETWORK_TIMEOUT
from fastforward_cli.merge.ancestry import DEFAULT_DIVERGENCE_LIMIT
from fastforward_cli.merge.models import CommentPolicy, MergeStrategy, MessageStyle

__all__ = [
    "CONFIG_RELATIVE_PATH",
    "ConfigError",
    "FastForwardConfig",
    "load_config",
    "parse_bool",
]

logger = logging.getLogger(__name__)

CONFIG_RELATIVE_PATH = Path(".github") / "fast-forward.yaml"
_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_FALSY_VALUES = {"0", "false", "no", "off", ""}


class ConfigError(RuntimeError):
    """Raised when configuration is invalid."""


def parse_bool(value: object, *, name: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY_VALUES:
        return True
    if text in _FALSY_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _parse_enum(enum_cls: type, value: object, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"Invalid {name} {value!r}. Expected one of: {choices}") from exc


def _parse_positive(value: object, name: str, cast: type) -> Any:
    try:
        parsed = cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: {value!r}") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return parsed


@dataclass(slots=True, frozen=True)
class FastForwardConfig:
    """Recognized options; ``debug`` only changes verbosity."""

    merge: bool = False
    comment: CommentPolicy = CommentPolicy.ON_ERROR
    merge_strategy: MergeStrategy = MergeStrategy.FAST_FORWARD
    merge_commit_message_style: MessageStyle = MessageStyle.DEFAULT
    debug: bool = False
    divergence_limit: int = DEFAULT_DIVERGENCE_LIMIT
    network_timeout: float = DEFAULT_NETWORK_TIMEOUT
    author_email: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "FastForwardConfig":
        if not isinstance(data, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        normalized = {str(key).strip().replace("-", "_"): value for key, value in data.items()}
        unknown = sorted(set(normalized) - known)
        if unknown:
            logger.warning("Ignoring unknown fast_forward options: %s", ", ".join(unknown))
        return cls().with_overrides(**{key: value for key, value in normalized.items() if key in known})

    def with_overrides(self, **overrides: object) -> "FastForwardConfig":
        """Return a copy with every non-``None`` override validated and applied."""
        values: dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("merge", "debug"):
                values[key] = parse_bool(value, name=key)
            elif key == "comment":
                values[key] = _parse_enum(CommentPolicy, value, "comment policy")
            elif key == "merge_strategy":
                values[key] = _parse_enum(MergeStrategy, value, "merge strategy")
            elif key == "merge_commit_message_style":
                values[key] = _parse_enum(MessageStyle, value, "merge commit message style")
            elif key == "divergence_limit":
                values[key] = _parse_positive(value, "divergence limit", int)
            elif key == "network_timeout":
                values[key] = _parse_positive(value, "network timeout", float)
            elif key == "author_email":
                email = str(value).strip()
                values[key] = email or None
            else:
                raise ConfigError(f"Unknown option {key!r}")
        return replace(self, **values)

    def to_dict(self) -> dict[str, object]:
        return {
            "merge": self.merge,
            "comment": str(self.comment),
            "merge_strategy": str(self.merge_strategy),
            "merge_commit_message_style": str(self.merge_commit_message_style),
            "debug": self.debug,
            "divergence_limit": self.divergence_limit,
            "network_timeout": self.network_timeout,
            "author_email": self.author_email,
        }


def load_config(repo_root: Path) -> FastForwardConfig:
    """Load the ``fast_forward`` section of ``.github/fast-forward.yaml``."""
    config_path = Path(repo_root) / CONFIG_RELATIVE_PATH
    if not config_path.exists():
        return FastForwardConfig()

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle) or {}
    except Exception as exc:  # ruamel raises several unrelated error types
        raise ConfigError(f"Failed to parse {config_path}: {exc}") from exc

    section = payload.get("fast_forward") if isinstance(payload, dict) else None
    logger.debug("Loaded %s: %s", config_path, section)
    return FastForwardConfig.from_dict(section if isinstance(section, dict) else None)
