# gittree/validation.py
"""
Semantic validation and parsing for configuration.

Responsibilities:
- Validate constraints the JSON Schema cannot express
- Fill in defaults for omitted settings
- Produce actionable errors with field path context

This module does NOT:
- load YAML files
- load JSON Schema files
- interact with git
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from gittree.config import Config


DEFAULT_LOG_FORMAT = "%C(auto)%h %d %<(50,trunc)%s"

_FORBIDDEN_LOG_ARGS = {"--not", "--all", "--branches", "--remotes", "--tags"}


class ValidationError(RuntimeError):
    """
    Raised when configuration is structurally valid but semantically invalid.

    Attributes:
        path: dotted path of the failing field, for example tips.extra.0
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


@dataclass(frozen=True)
class TipOptions:
    head: bool = True
    local_branches: bool = True
    upstreams: bool = True
    same_name_remotes: bool = False
    extra: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LogOptions:
    format: Optional[str] = DEFAULT_LOG_FORMAT
    args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidatedConfig:
    tips: TipOptions
    log: LogOptions


def validate_config(cfg: Config) -> ValidatedConfig:
    """
    Validate and parse configuration into a form the pipeline can trust.
    """
    return ValidatedConfig(
        tips=validate_tips(cfg.tips),
        log=validate_log(cfg.log),
    )


def validate_tips(tips: Mapping[str, Any]) -> TipOptions:
    """
    Validate and parse the tips section.

    Enforces:
    - boolean switches are booleans
    - at least one tip source is enabled
    - extra revisions are single tokens that cannot be read as options
      or negations
    """
    defaults = TipOptions()

    head = _require_bool(tips, "head", "tips.head", defaults.head)
    local_branches = _require_bool(tips, "local_branches", "tips.local_branches", defaults.local_branches)
    upstreams = _require_bool(tips, "upstreams", "tips.upstreams", defaults.upstreams)
    same_name_remotes = _require_bool(
        tips, "same_name_remotes", "tips.same_name_remotes", defaults.same_name_remotes
    )

    extra_raw = tips.get("extra", [])
    if not isinstance(extra_raw, list):
        raise ValidationError("tips.extra", "extra must be a list")

    extra = []
    for i, rev in enumerate(extra_raw):
        path = f"tips.extra.{i}"

        if not isinstance(rev, str):
            raise ValidationError(path, "revision must be a string")

        rev = rev.strip()
        if not rev:
            raise ValidationError(path, "revision must not be empty")

        if any(ch.isspace() for ch in rev):
            raise ValidationError(path, f"revision must not contain whitespace: {rev!r}")

        if rev.startswith(("^", "-")):
            raise ValidationError(path, f"revision must not start with '^' or '-': {rev!r}")

        extra.append(rev)

    if not (head or local_branches or upstreams or same_name_remotes or extra):
        raise ValidationError("tips", "enable at least one tip source or list extra revisions")

    return TipOptions(
        head=head,
        local_branches=local_branches,
        upstreams=upstreams,
        same_name_remotes=same_name_remotes,
        extra=tuple(extra),
    )


def validate_log(log: Mapping[str, Any]) -> LogOptions:
    """
    Validate and parse the log section.

    Enforces:
    - format, when given, is a non-empty string (null disables it)
    - args are options, and none of them changes which commits are walked
    """
    fmt: Optional[str] = DEFAULT_LOG_FORMAT
    if "format" in log:
        fmt_raw = log["format"]
        if fmt_raw is None:
            fmt = None
        elif not isinstance(fmt_raw, str):
            raise ValidationError("log.format", "format must be a string or null")
        elif not fmt_raw.strip():
            raise ValidationError("log.format", "format must not be empty")
        else:
            fmt = fmt_raw

    args_raw = log.get("args", [])
    if not isinstance(args_raw, list):
        raise ValidationError("log.args", "args must be a list")

    args = []
    for i, arg in enumerate(args_raw):
        path = f"log.args.{i}"

        if not isinstance(arg, str):
            raise ValidationError(path, "argument must be a string")

        if not arg.startswith("-"):
            raise ValidationError(path, f"argument must be an option: {arg!r}")

        if arg.split("=", 1)[0] in _FORBIDDEN_LOG_ARGS:
            raise ValidationError(path, f"argument changes the commit selection: {arg!r}")

        args.append(arg)

    return LogOptions(format=fmt, args=tuple(args))


def _require_bool(obj: Mapping[str, Any], key: str, path: str, default: bool) -> bool:
    raw = obj.get(key, default)
    if not isinstance(raw, bool):
        raise ValidationError(path, "value must be a boolean")
    return raw
