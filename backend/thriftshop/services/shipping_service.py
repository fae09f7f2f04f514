"""
shipping_service.py: courier rate lookup against the RajaOngkir API.

A single fetch-and-parse wrapper: POST form data to <base>/cost with the
account key in a "key" header, and return the courier's list of services
with their costs.
"""

from __future__ import annotations

import logging

import httpx

from ..validation import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.rajaongkir.com/starter/"
GENERIC_ERROR = "Could not fetch shipping costs right now. Please try again."


class RajaOngkirClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        courier: str = "jne",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.courier = courier
        self.timeout = timeout
        self.transport = transport

    def calculate_cost(self, origin: str, destination: str, weight: int, courier: str | None = None) -> list[dict]:
        """
        Returns rajaongkir.results[0].costs, e.g.
        [{"service": "REG", "description": "...", "cost": [{"value": 18000, "etd": "2-3", "note": ""}]}]

        Raises:
            UpstreamError: transport failure, non-2xx status, or a non-200 status inside the payload
        """
        if not self.api_key:
            logger.error("RAJAONGKIR_API_KEY is not configured")
            raise UpstreamError(GENERIC_ERROR)

        form = {
            "origin": str(origin),
            "destination": str(destination),
            "weight": str(weight),
            "courier": courier or self.courier,
        }
        logger.debug("Requesting shipping cost: %s", form)

        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = client.post("cost", data=form, headers={"key": self.api_key})
        except httpx.HTTPError as e:
            logger.error("Shipping cost request failed: %s", e)
            raise UpstreamError(GENERIC_ERROR) from e

        if not response.is_success:
            # Provider body is for server logs only
            logger.error("Shipping cost HTTP %s: %s", response.status_code, response.text)
            raise UpstreamError(GENERIC_ERROR)

        try:
            payload = response.json()["rajaongkir"]
            status = payload["status"]
        except (ValueError, KeyError, TypeError):
            logger.error("Unreadable shipping cost response: %s", response.text)
            raise UpstreamError(GENERIC_ERROR)

        if status.get("code") != 200:
            logger.error("Shipping cost rejected by provider: %s", status.get("description"))
            raise UpstreamError(GENERIC_ERROR)

        try:
            return payload["results"][0]["costs"]
        except (KeyError, IndexError, TypeError):
            logger.error("Shipping cost response has no results: %s", response.text)
            raise UpstreamError(GENERIC_ERROR)
