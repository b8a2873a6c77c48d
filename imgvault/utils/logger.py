"""
Logging setup with credential masking.

Host API keys and delete credentials end up in URLs and form fields; a
leaked delete URL lets anyone remove the hosted asset. Every handler
installed here carries ``SensitiveDataFilter`` so those values never reach
the console.
"""
from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

SENSITIVE_FIELDS = {
    "password", "secret", "token", "api_key", "apikey", "key",
    "authorization", "credentials", "delete_url", "deleteurl", "delete_token",
}

SENSITIVE_PATTERNS = [
    (re.compile(r"(Bearer\s+[a-zA-Z0-9\-._~+/]+=*)"), "Bearer ***"),
    (re.compile(r"([?&](?:key|token)=)[^&\s]+"), r"\1***"),
    (re.compile(r"([a-zA-Z0-9]{32,})"), lambda m: f"***{m.group(1)[-4:]}"),
]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def _mask_string(text: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def mask_sensitive_data(data: Any, mask_value: str = "***") -> Any:
    """Recursively redact credential-like keys and strings in dicts and lists."""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
                if isinstance(value, str) and len(value) > 4:
                    masked[key] = f"{mask_value}{value[-4:]}"
                else:
                    masked[key] = mask_value
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked
    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask_value) for item in data)
    if isinstance(data, str):
        return _mask_string(data)
    return data


class SensitiveDataFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _mask_string(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = mask_sensitive_data(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    mask_sensitive_data(arg) if isinstance(arg, (dict, str)) else arg
                    for arg in record.args
                )
        return True


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Install a masked console handler on the ``imgvault`` logger (idempotent)."""
    logger = logging.getLogger("imgvault")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    if not any(getattr(h, "_imgvault", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler.addFilter(SensitiveDataFilter())
        handler._imgvault = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def log_config(config_name: str, config_data: dict[str, Any], logger: logging.Logger | None = None) -> None:
    logger = logger or logging.getLogger(__name__)
    masked = mask_sensitive_data(config_data)
    logger.info("Configuration: %s", config_name)
    logger.debug("%s details: %s", config_name, json.dumps(masked, indent=2, default=str))
