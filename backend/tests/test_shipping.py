"""
Shipping cost tests: route validation and the RajaOngkir client against a mocked transport.
"""

import httpx
import pytest

from thriftshop.services.shipping_service import GENERIC_ERROR, RajaOngkirClient
from thriftshop.validation import UpstreamError

COSTS = [{"service": "REG", "description": "Layanan Reguler", "cost": [{"value": 18000, "etd": "2-3", "note": ""}]}]


def rajaongkir_body(status_code=200, results=None):
    return {
        "rajaongkir": {
            "status": {"code": status_code, "description": "OK" if status_code == 200 else "Bad request"},
            "results": results if results is not None else [{"code": "jne", "costs": COSTS}],
        }
    }


class TestShippingRoute:

    def test_cost(self, client, shipping):
        resp = client.post("/api/shipping/cost", data={"origin": "501", "destination": "114", "weight": "1700"})
        assert resp.status_code == 200
        assert resp.json["costs"][0]["service"] == "REG"
        assert shipping.calls == [("501", "114", 1700, None)]

    def test_courier_passed_through(self, client, shipping):
        client.post("/api/shipping/cost", json={"origin": "501", "destination": "114", "weight": 1000, "courier": "pos"})
        assert shipping.calls[-1][3] == "pos"

    @pytest.mark.parametrize("weight", ["0", "-5", "heavy", None])
    def test_bad_weight(self, client, shipping, weight):
        data = {"origin": "501", "destination": "114"}
        if weight is not None:
            data["weight"] = weight
        assert client.post("/api/shipping/cost", data=data).status_code == 400
        assert shipping.calls == []

    def test_missing_destination(self, client, shipping):
        assert client.post("/api/shipping/cost", data={"origin": "501", "weight": "1"}).status_code == 400

    def test_upstream_failure_is_502(self, client, shipping):
        shipping.error = UpstreamError(GENERIC_ERROR)
        resp = client.post("/api/shipping/cost", data={"origin": "501", "destination": "114", "weight": "1700"})
        assert resp.status_code == 502
        assert resp.json["error"] == GENERIC_ERROR


class TestRajaOngkirClient:

    def client_with(self, handler, api_key="test-key"):
        return RajaOngkirClient(
            api_key=api_key,
            base_url="https://rajaongkir.test/starter",
            transport=httpx.MockTransport(handler),
        )

    def test_posts_form_with_key_header(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("key")
            seen["body"] = request.content.decode()
            return httpx.Response(200, json=rajaongkir_body())

        costs = self.client_with(handler).calculate_cost("501", "114", 1700)
        assert costs == COSTS
        assert seen["url"] == "https://rajaongkir.test/starter/cost"
        assert seen["key"] == "test-key"
        assert "courier=jne" in seen["body"]
        assert "weight=1700" in seen["body"]

    def test_http_error_status(self):
        rajaongkir = self.client_with(lambda request: httpx.Response(400, json=rajaongkir_body(400, [])))
        with pytest.raises(UpstreamError) as exc:
            rajaongkir.calculate_cost("501", "114", 1700)
        assert str(exc.value) == GENERIC_ERROR

    def test_error_code_inside_payload(self):
        rajaongkir = self.client_with(lambda request: httpx.Response(200, json=rajaongkir_body(400, [])))
        with pytest.raises(UpstreamError):
            rajaongkir.calculate_cost("501", "114", 1700)

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(UpstreamError):
            self.client_with(handler).calculate_cost("501", "114", 1700)

    def test_missing_api_key(self):
        rajaongkir = self.client_with(lambda request: httpx.Response(200, json=rajaongkir_body()), api_key="")
        with pytest.raises(UpstreamError):
            rajaongkir.calculate_cost("501", "114", 1700)
