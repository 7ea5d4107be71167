# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

Severity = Literal["critical", "high", "medium", "low"]
SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low")

CONFIG_FILENAMES: tuple[str, ...] = (".slopguardrc.json", ".slopguardrc", "slopguard.config.json")


class ConfigError(ValueError):
    """Raised when a configuration is malformed. Nothing from it is applied."""


class CustomRuleConfig(BaseModel):
    """A user-supplied detection rule.

    Attributes:
        id: Unique rule identifier, reported as the issue type.
        pattern: Regular expression source. Compiled case-insensitive.
        message: Short human message shown for every match.
        severity: One of ``critical``, ``high``, ``medium``, ``low``.
        description: Longer explanation. Defaults to ``message``.
        fix: Optional remediation hint.
        learn_more: Optional documentation link.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    message: str = Field(min_length=1)
    severity: Severity
    description: str | None = None
    fix: str | None = None
    learn_more: str | None = Field(default=None, alias="learnMore", description="Documentation link")

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value, re.IGNORECASE)
        except re.error as exc:
            raise ValueError(f"is not a valid regex: {value} ({exc})") from exc
        return value


class SlopGuardConfig(BaseModel):
    """Validated run configuration.

    Accepts both snake_case keys and the camelCase keys used by rc files.

    Attributes:
        custom_rules: Extra rules appended after the built-in ones, in order.
        severity_overrides: Rule id to severity. Unknown ids are ignored.
        ignore_paths: Glob patterns of files to leave out of discovery.
        strict: Treat critical findings as blocking (exit code 2).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    custom_rules: list[CustomRuleConfig] = Field(
        default_factory=list,
        validation_alias=AliasChoices("custom_rules", "customPatterns", "customRules"),
        description="Extra rules appended after the built-in ones",
    )
    severity_overrides: dict[str, Severity] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("severity_overrides", "severityOverrides"),
        description="Rule id to severity",
    )
    ignore_paths: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("ignore_paths", "ignorePaths"),
        description="Glob patterns of files to skip",
    )
    strict: bool = Field(
        default=False,
        validation_alias=AliasChoices("strict", "blockOnCritical"),
        description="Exit with code 2 on critical findings",
    )


def _format_loc(loc: Sequence[Any]) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _describe_error(exc: ValidationError, raw: Any, prefix: Sequence[Any] = ()) -> str:
    err = exc.errors()[0]
    loc = tuple(prefix) + tuple(err["loc"])
    where = _format_loc(loc)

    # Name the offending rule when the failure sits inside a rule list.
    node = raw
    for pos, key in enumerate(loc):
        try:
            node = node[key]
        except (KeyError, IndexError, TypeError):
            break
        if isinstance(key, int) and isinstance(node, Mapping) and node.get("id"):
            rest = _format_loc(loc[pos + 1 :])
            where = f"{_format_loc(loc[: pos + 1])} (id={node['id']!r})" + (f".{rest}" if rest else "")
            break

    msg = err["msg"]
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, ") :]
    return f"{where}: {msg}" if where else msg


def validate_custom_rules(items: Sequence[CustomRuleConfig | Mapping[str, Any]]) -> list[CustomRuleConfig]:
    """Validate a batch of custom rules, rejecting the whole batch on the first bad entry."""
    rules: list[CustomRuleConfig] = []
    for index, item in enumerate(items):
        if isinstance(item, CustomRuleConfig):
            rules.append(item)
            continue
        try:
            rules.append(CustomRuleConfig.model_validate(item))
        except ValidationError as exc:
            raise ConfigError(f"customPatterns{_describe_error(exc, list(items), prefix=(index,))}") from exc
    return rules


def validate_config(raw: Any) -> SlopGuardConfig:
    """Validate a decoded configuration mapping.

    Raises:
        ConfigError: naming the first violated field, e.g.
            ``customPatterns[1] (id='x').pattern: is not a valid regex: (``.
    """
    if isinstance(raw, SlopGuardConfig):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigError("Config must be an object")
    for key in ("custom_rules", "customPatterns", "customRules"):
        items = raw.get(key)
        if isinstance(items, list):
            validate_custom_rules(items)
    try:
        return SlopGuardConfig.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigError(_describe_error(exc, raw)) from exc


def load_config(root: str | Path) -> SlopGuardConfig | None:
    """Load the first rc file found under ``root``, or ``None`` if there is none."""
    root_path = Path(root)
    for name in CONFIG_FILENAMES:
        path = root_path / name
        if not path.is_file():
            continue
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{path.name}: invalid JSON ({exc})") from exc
        config = validate_config(raw)
        logger.info(f"Loaded config from {path.name}")
        if config.custom_rules:
            logger.info(f"   added {len(config.custom_rules)} custom rule(s)")
        return config
    return None
