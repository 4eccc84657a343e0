"""
Configuration: which rules are enabled, their severities and thresholds.

Settings come from TOML. Lookup order: an explicit path, then
.cleansweep.toml / cleansweep.toml in the project directory, then the
[tool.cleansweep] table of pyproject.toml, then built-in defaults.

    [rules.function-shape]
    severity = "error"
    max_parameters = 4

    [rules.comment-quality]
    enabled = false

Unknown rule ids are ignored with a warning. Anything else that is wrong
(bad severity, unknown threshold, wrong threshold type) raises
ConfigurationError before any file is analyzed.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from cleansweep.errors import ConfigurationError
from cleansweep.findings.models import Severity
from cleansweep.registry import RuleRegistry, builtin_rule_types
from cleansweep.rules.base import Rule

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".cleansweep.toml", "cleansweep.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEY = "cleansweep"

# Keys in a [rules.<id>] table that are not rule thresholds.
RESERVED_KEYS = frozenset({"enabled", "severity"})


class RuleSettings(BaseModel):
    """Settings for one rule as written in the configuration file."""

    enabled: bool = True
    severity: Optional[Severity] = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class Config(BaseModel):
    """
    Scanner configuration.

    `rules` maps rule ids to their settings; rules without an entry run with
    their defaults. `source` records where the settings were loaded from.
    """

    rules: dict[str, RuleSettings] = Field(default_factory=dict)
    source: Optional[str] = None

    model_config = {"frozen": True}


def get_default_config() -> Config:
    """Return the default configuration: every built-in rule, default settings."""
    return Config()


def _parse_rule_settings(rule_id: str, raw: Any) -> RuleSettings:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[rules.{rule_id}] must be a table, got {type(raw).__name__}")
    enabled = raw.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigurationError(f"[rules.{rule_id}] enabled must be true or false, got {enabled!r}")
    severity = raw.get("severity")
    if severity is not None:
        try:
            severity = Severity(str(severity).lower())
        except ValueError:
            allowed = ", ".join(s.value for s in Severity)
            raise ConfigurationError(
                f"[rules.{rule_id}] severity must be one of {allowed}, got {raw['severity']!r}"
            ) from None
    options = {k: v for k, v in raw.items() if k not in RESERVED_KEYS}
    return RuleSettings(enabled=enabled, severity=severity, options=options)


def config_from_mapping(mapping: dict[str, Any], source: Optional[str] = None) -> Config:
    """Build a Config from an already-parsed TOML mapping."""
    rules_table = mapping.get("rules", {})
    if not isinstance(rules_table, dict):
        raise ConfigurationError(f"'rules' must be a table, got {type(rules_table).__name__}")
    unknown_top = sorted(set(mapping) - {"rules"})
    if unknown_top:
        logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown_top))
    rules = {rule_id: _parse_rule_settings(rule_id, raw) for rule_id, raw in rules_table.items()}
    return Config(rules=rules, source=source)


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(project_dir: Path, config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from an explicit path or project-local files.

    Raises:
        ConfigurationError: the file is missing, unreadable or invalid.
    """
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else project_dir / config_path
        if not resolved.exists():
            raise ConfigurationError(f"Config file does not exist: {resolved}")
        return config_from_mapping(_load_toml(resolved), source=str(resolved))

    for filename in CONFIG_FILENAMES:
        candidate = project_dir / filename
        if candidate.exists():
            logger.info("Using configuration from %s", candidate)
            return config_from_mapping(_load_toml(candidate), source=str(candidate))

    pyproject = project_dir / PYPROJECT_FILENAME
    if pyproject.exists():
        tool = _load_toml(pyproject).get("tool", {})
        mapping = tool.get(PYPROJECT_TOOL_KEY) if isinstance(tool, dict) else None
        if isinstance(mapping, dict):
            logger.info("Using [tool.%s] from %s", PYPROJECT_TOOL_KEY, pyproject)
            return config_from_mapping(mapping, source=str(pyproject))

    return get_default_config()


def _build_rule(rule_type: type[Rule], settings: RuleSettings) -> Rule:
    try:
        return rule_type.from_settings(settings.options, severity=settings.severity)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"[rules.{rule_type.id}] {problems}") from e


def get_enabled_rules(config: Config | None = None) -> list[Rule]:
    """
    Instantiate the enabled built-in rules for a config (or the default config).

    Raises:
        ConfigurationError: a threshold is unknown or has the wrong type.
    """
    if config is None:
        config = get_default_config()
    known = {rule_type.id: rule_type for rule_type in builtin_rule_types()}
    for rule_id in sorted(set(config.rules) - set(known)):
        logger.warning("Ignoring configuration for unknown rule %r", rule_id)

    rules: list[Rule] = []
    for rule_id, rule_type in known.items():
        settings = config.rules.get(rule_id, RuleSettings())
        if not settings.enabled:
            logger.info("Rule %s disabled by configuration", rule_id)
            continue
        rules.append(_build_rule(rule_type, settings))
    return rules


def build_registry(config: Config | None = None) -> RuleRegistry:
    """Registry holding the rules enabled by config."""
    return RuleRegistry(get_enabled_rules(config))


def default_config_template() -> str:
    """Return a starter configuration listing every rule and its thresholds."""
    lines: list[str] = []
    for rule_type in builtin_rule_types():
        lines.append(f"[rules.{rule_type.id}]")
        lines.append("enabled = true")
        lines.append(f'severity = "{rule_type.default_severity.value}"')
        for key, value in rule_type.Options().model_dump().items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return str(value)
