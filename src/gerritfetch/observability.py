"""Structured logging helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(slots=True)
class StructuredLogger:
    """Collects structured records and mirrors them to :mod:`logging`.

    Records must never carry secret values; log paths, key names and
    lengths instead.
    """

    name: str = "gerritfetch"
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

        suffix = f" {json.dumps(extra, sort_keys=True, default=str)}" if extra else ""
        logging.getLogger(self.name).log(
            _LEVELS.get(level, logging.INFO),
            "[%s] %s%s",
            operation,
            message,
            suffix,
        )

    def records_for_operation(self, operation: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("operation") == operation]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True, default=str) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
