"""
High-level service behind the ``fill_pdf`` function.

Responsibilities
----------------
* validate the shared secret and the request parameters
* resolve order, contact and positions from sevDesk
* build the field mapping (defaults < contact/address < kWp/kW/kVA < dates)
* fill the template and wrap the result in a gateway response
"""

from __future__ import annotations

import base64
import datetime as dt
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .errors import BadRequest, FertigmeldungError, Unauthorized
from .extraction import extract_inverter_power, extract_kwp_from_order, extract_kwp_from_positions
from .field_mapper import append_dates, order_contact_to_mapping
from .pdf_utils import fill_form
from .sevdesk_client import SevdeskClient

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

DEFAULT_FILENAME = "filled.pdf"
_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


class FillRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    token: Optional[str] = None


@dataclass
class FunctionResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    is_base64_encoded: bool = False

    def to_event(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": self.body,
            "isBase64Encoded": self.is_base64_encoded,
        }


@dataclass
class FilledDocument:
    pdf_bytes: bytes
    filename: str
    mapping: Dict[str, Any]


def error_response(status_code: int, message: str) -> FunctionResponse:
    return FunctionResponse(
        status_code=status_code,
        headers={**CORS_HEADERS, "Content-Type": "text/plain"},
        body=str(message),
    )


def build_filename(mapping: Mapping[str, Any]) -> str:
    name = mapping.get("Text1")
    if not isinstance(name, str):
        return DEFAULT_FILENAME
    parts = name.split()
    if not parts:
        return DEFAULT_FILENAME
    last = _FILENAME_UNSAFE.sub("", parts[-1])
    return f"Fertigmeldung_Ihrer_Anlage_{last}_Vorlage.pdf" if last else DEFAULT_FILENAME


def load_field_defaults(path: Path) -> Dict[str, Any]:
    """Base layer of field values; a missing or broken file means no defaults."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("No field defaults at %s", path)
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable field defaults %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring field defaults %s: expected a JSON object", path)
        return {}
    return data


def _header(headers: Optional[Mapping[str, Any]], name: str) -> Optional[str]:
    for key, value in (headers or {}).items():
        if key.lower() == name.lower():
            return value
    return None


class FertigmeldungService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        today: Optional[Callable[[], dt.date]] = None,
    ):
        self._settings = settings
        self.session_factory = session_factory
        self.today = today or dt.date.today

    @property
    def settings(self) -> Settings:
        return self._settings or Settings.from_env()

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------
    def handle(
        self,
        method: str,
        headers: Optional[Mapping[str, Any]] = None,
        body: Union[str, bytes, None] = None,
        body_is_base64: bool = False,
    ) -> FunctionResponse:
        if (method or "").upper() == "OPTIONS":
            return FunctionResponse(status_code=200, headers=dict(CORS_HEADERS))

        try:
            settings = self.settings
            self.authorize(settings, headers)
            if body and body_is_base64:
                body = base64.b64decode(body, validate=True)
            request = self.parse_request(body)
            order_number = request.order_number or settings.default_order
            token = request.token or settings.fixed_token
            if not order_number or not token:
                raise BadRequest("orderNumber and token required")

            document = self.generate(order_number, token, settings)
        except (Unauthorized, BadRequest) as exc:
            return error_response(exc.status_code, str(exc))
        except FertigmeldungError as exc:
            logger.error("Fill failed: %s", exc)
            return error_response(exc.status_code, f"Error: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error while filling PDF")
            return error_response(500, f"Error: {exc}")

        return FunctionResponse(
            status_code=200,
            headers={
                **CORS_HEADERS,
                "Content-Type": "application/pdf",
                "Content-Disposition": f'attachment; filename="{document.filename}"',
            },
            body=base64.b64encode(document.pdf_bytes).decode("ascii"),
            is_base64_encoded=True,
        )

    @staticmethod
    def authorize(settings: Settings, headers: Optional[Mapping[str, Any]]) -> None:
        if settings.api_key and _header(headers, "Authorization") != settings.api_key:
            raise Unauthorized()

    @staticmethod
    def parse_request(body: Union[str, bytes, None]) -> FillRequest:
        if not body:
            return FillRequest()
        return FillRequest.model_validate(json.loads(body))

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def build_mapping(self, client: SevdeskClient, order_number: str, settings: Settings) -> Dict[str, Any]:
        mapping = load_field_defaults(settings.fields_template_path)

        order, contact = client.fetch_order_and_contact(order_number)
        mapping.update(order_contact_to_mapping(order, contact))

        positions = client.fetch_order_positions(order, order_number)
        kwp = extract_kwp_from_positions(positions) or extract_kwp_from_order(order)
        if kwp:
            mapping["kWp"] = kwp

        inverter_power = extract_inverter_power(positions, part_lookup=client.fetch_part)
        if inverter_power:
            mapping["kW"] = inverter_power
            mapping["kVA"] = inverter_power

        append_dates(mapping, today=self.today())
        return mapping

    def generate(self, order_number: str, token: str, settings: Optional[Settings] = None) -> FilledDocument:
        settings = settings or self.settings
        with self.session_factory() as session:
            client = SevdeskClient(token, session=session, timeout=settings.timeout)
            mapping = self.build_mapping(client, order_number, settings)

        pdf_bytes = fill_form(settings.form_path, mapping)
        filename = build_filename(mapping)
        logger.info("Generated %s for order %s", filename, order_number)
        return FilledDocument(pdf_bytes=pdf_bytes, filename=filename, mapping=mapping)
