"""Logging helpers."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

# Query/form parameters that carry provider credentials.
_SECRET_PARAM = re.compile(r"\b((?:token|sign|appKey)=)[^&\s'\"]+")


class CredentialRedactingFilter(logging.Filter):
    """Masks token, signature and app key values in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SECRET_PARAM.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def configure_logging(level: str, log_dir: Optional[Path] = None) -> None:
    """Configure logging for CLI usage; adds ``gateway.log`` under ``log_dir`` when given."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "gateway.log"))

    redactor = CredentialRedactingFilter()
    for handler in handlers:
        handler.addFilter(redactor)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
    )
    # httpx logs every request URL at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
