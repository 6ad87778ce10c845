from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast

from vaultfilter.exceptions import VaultFilterError

from .errors import CLIError
from .results import CommandMeta, CommandResult, ErrorInfo

OutputFormat = Literal["table", "json"]

OUTPUT_ENV_VAR = "VAULT_FILTER_OUTPUT"
LOG_FILE_ENV_VAR = "VAULT_FILTER_LOG_FILE"

_OUTPUT_FORMATS = ("table", "json")


@dataclass
class CLIContext:
    output: OutputFormat
    quiet: bool
    verbosity: int
    log_file: Path | None


def resolve_output(option: str | None, *, json_flag: bool) -> OutputFormat:
    """Pick the output format: --json, then --output, then the environment."""
    if json_flag:
        return "json"
    if option is not None:
        return cast(OutputFormat, option)
    env_value = os.getenv(OUTPUT_ENV_VAR, "").strip().lower()
    if not env_value:
        return "table"
    if env_value not in _OUTPUT_FORMATS:
        raise CLIError(
            f"{OUTPUT_ENV_VAR} must be one of: {', '.join(_OUTPUT_FORMATS)} (got {env_value!r}).",
            exit_code=2,
            error_type="usage_error",
        )
    return cast(OutputFormat, env_value)


def resolve_log_file(option: str | None) -> Path | None:
    if option:
        return Path(option)
    env_value = os.getenv(LOG_FILE_ENV_VAR, "").strip()
    return Path(env_value) if env_value else None


def exit_code_for_exception(exc: Exception) -> int:
    if isinstance(exc, CLIError):
        return exc.exit_code
    if isinstance(exc, VaultFilterError):
        return 2
    return 1


def error_info_for_exception(exc: Exception) -> ErrorInfo:
    if isinstance(exc, CLIError):
        return ErrorInfo(type=exc.error_type, message=exc.message, details=exc.details)
    if isinstance(exc, VaultFilterError):
        return ErrorInfo(type="validation_error", message=str(exc), details=None)
    return ErrorInfo(type="internal_error", message=str(exc), details=None)


def build_result(
    *,
    ok: bool,
    command: str,
    started_at: float,
    data: Any | None,
    warnings: list[str],
    error: ErrorInfo | None = None,
) -> CommandResult:
    duration_ms = int(max(0.0, (time.time() - started_at) * 1000))
    return CommandResult(
        ok=ok,
        command=command,
        data=data,
        warnings=warnings,
        meta=CommandMeta(duration_ms=duration_ms),
        error=error,
    )
