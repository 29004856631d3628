"""
Environment-driven configuration for the fill function.

Values are read from the process environment (optionally seeded from
``.env.local`` / ``.env``) every time ``Settings.from_env()`` is called, so a
warm function instance picks up changed variables on the next invocation.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(".env.local"); load_dotenv()  # also loads .env if present

DEFAULT_FORM_FILENAME = "Fertigmeldung_Ihrer_Anlage Vorlage.pdf"
DEFAULT_FIELDS_TEMPLATE = "fields_template.json"
DEFAULT_TIMEOUT = 15.0


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value if value else None


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    default_order: Optional[str] = None
    fixed_token: Optional[str] = None
    form_path: Path = Path(DEFAULT_FORM_FILENAME)
    fields_template_path: Path = Path(DEFAULT_FIELDS_TEMPLATE)
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> "Settings":
        cwd = Path.cwd()
        timeout_raw = _env("SEVDESK_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            logging.getLogger(__name__).warning(
                "Ignoring invalid SEVDESK_TIMEOUT=%r, using %s", timeout_raw, DEFAULT_TIMEOUT
            )
            timeout = DEFAULT_TIMEOUT

        return cls(
            api_key=_env("API_KEY"),
            default_order=_env("SEVDESK_DEFAULT_ORDER"),
            fixed_token=_env("SEVDESK_FIXED_TOKEN"),
            form_path=Path(_env("FORM_PATH") or cwd / DEFAULT_FORM_FILENAME),
            fields_template_path=Path(_env("FIELDS_TEMPLATE_PATH") or cwd / DEFAULT_FIELDS_TEMPLATE),
            timeout=timeout,
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Initialize basic logging with a shared format and log level.

    The level can be provided directly or via the ``LOG_LEVEL`` environment
    variable (defaults to ``INFO``).
    """

    resolved_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
