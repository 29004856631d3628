"""
sevDesk API access.

The API is reachable on two hosts and addresses orders either by query
parameter or by path, and the response envelope differs between endpoints.
Every lookup therefore walks a fixed list of candidate URLs and keeps the
first one that produces a usable record.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlencode

import requests

from .errors import ContactNotFound, OrderNotFound
from .records import first_value, unwrap_first

logger = logging.getLogger(__name__)

API_HOSTS = ("https://api.sevdesk.de", "https://my.sevdesk.de")
USER_AGENT = "pdf-filler/1.0"

CONTACT_KEYS = ("contact", "customer", "accountContact")
CONTACT_ID_KEYS = ("contactId", "contact_id", "customerId")

_MISSING = object()


def first_success(producers: Iterable[Callable[[], Any]]) -> Any:
    """Evaluate ``producers`` in order and return the first non-None result."""
    for produce in producers:
        result = produce()
        if result is not None:
            return result
    return None


class SevdeskClient:
    """Thin ``requests`` wrapper bound to one API token."""

    def __init__(self, token: str, session: Optional[requests.Session] = None, timeout: float = 15):
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.token,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def fetch_json(self, url: str) -> Any:
        r = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def _try_json(self, url: str) -> Any:
        """Fetch ``url``; failures are logged and reported as ``_MISSING``."""
        try:
            return self.fetch_json(url)
        except (requests.RequestException, ValueError) as exc:
            logger.debug("Candidate %s failed: %s", url, exc)
            return _MISSING

    def _try_record(self, url: str) -> Any:
        resp = self._try_json(url)
        if resp is _MISSING:
            return None
        return unwrap_first(resp)

    def _first_record(self, urls: Iterable[str]) -> Any:
        return first_success(partial(self._try_record, url) for url in urls)

    # ------------------------------------------------------------------
    # Orders + contacts
    # ------------------------------------------------------------------
    @staticmethod
    def order_urls(order_number: str) -> List[str]:
        embed = "embed=positions"
        api, my = API_HOSTS
        return [
            f"{api}/api/v1/Order?orderNumber={order_number}&{embed}",
            f"{api}/api/v1/Order?number={order_number}&{embed}",
            f"{api}/api/v1/Order/{order_number}?{embed}",
            f"{my}/api/v1/Order?orderNumber={order_number}&{embed}",
            f"{my}/api/v1/Order/{order_number}?{embed}",
        ]

    @staticmethod
    def contact_urls(contact_id: Any) -> List[str]:
        return [f"{host}/api/v1/Contact/{contact_id}" for host in API_HOSTS]

    def fetch_order_and_contact(self, order_number: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        order = self._first_record(self.order_urls(order_number))
        if order is None:
            raise OrderNotFound()
        logger.info("Resolved order %s (id=%s)", order_number, _record_id(order))

        contact = contact_from_order(order)
        if contact is None:
            raise ContactNotFound()

        if contact.get("id") and not contact.get("name") and not contact.get("street"):
            full = self._first_record(self.contact_urls(contact["id"]))
            if full is not None:
                contact = full
            else:
                logger.info("Contact %s lookup failed, keeping stub", contact["id"])

        return order, contact

    # ------------------------------------------------------------------
    # Positions + parts
    # ------------------------------------------------------------------
    @staticmethod
    def position_urls(order_id: Any, order_number: Optional[str] = None) -> List[str]:
        params = {"order[objectName]": "Order", "order[id]": order_id}
        if order_number:
            params["order[orderNumber]"] = order_number
        query = urlencode(params)
        urls = []
        for host in API_HOSTS:
            urls.extend(
                [
                    f"{host}/api/v1/Order/{order_id}/positions",
                    f"{host}/api/v1/OrderPos?order[id]={order_id}",
                    f"{host}/api/v1/OrderPos?orderId={order_id}",
                    f"{host}/api/v1/OrderPos?{query}",
                ]
            )
        return urls

    def fetch_order_positions(self, order: Dict[str, Any], order_number: Optional[str] = None) -> List[Any]:
        """Embedded positions if present, else the first position endpoint that answers."""
        for key in ("positions", "orderPositions"):
            embedded = order.get(key)
            if isinstance(embedded, list):
                return embedded

        order_id = order.get("id")
        if not order_id:
            return []

        positions = first_success(
            partial(self._try_positions, url) for url in self.position_urls(order_id, order_number)
        )
        if positions is None:
            logger.info("No positions found for order id=%s", order_id)
            return []
        return positions

    def _try_positions(self, url: str) -> Optional[List[Any]]:
        resp = self._try_json(url)
        if resp is _MISSING:
            return None
        if isinstance(resp, dict) and isinstance(resp.get("objects"), list):
            return resp["objects"]
        if isinstance(resp, list):
            return resp
        value = unwrap_first(resp)
        if isinstance(value, list):
            return value
        if value is not None:
            return [value]
        return None

    @staticmethod
    def part_urls(part_id: Any) -> List[str]:
        return [f"{host}/api/v1/Part/{part_id}?embed=category" for host in API_HOSTS]

    def fetch_part(self, part_id: Any) -> Optional[Dict[str, Any]]:
        if not part_id:
            return None
        part = self._first_record(self.part_urls(part_id))
        return part if isinstance(part, dict) else None


def contact_from_order(order: Any) -> Optional[Dict[str, Any]]:
    """Embedded contact, else a ``{"id": ...}`` stub built from an id field."""
    if not isinstance(order, dict):
        return None
    contact = first_value(order, CONTACT_KEYS)
    if isinstance(contact, dict):
        return contact
    if contact:
        return {"id": contact}
    contact_id = first_value(order, CONTACT_ID_KEYS)
    if contact_id:
        return {"id": contact_id}
    return None


def _record_id(record: Any) -> Any:
    return record.get("id") if isinstance(record, dict) else None
