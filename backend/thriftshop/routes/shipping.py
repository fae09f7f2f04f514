# Overview: Flask API route for courier shipping cost lookup.

from flask import Blueprint, request, jsonify, current_app

from ..validation import ValidationError, UpstreamError

shipping_bp = Blueprint("shipping", __name__, url_prefix="/api/shipping")


def _parse_weight(raw) -> int:
    try:
        weight = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError("weight must be an integer number of grams")
    if weight <= 0:
        raise ValidationError("weight must be > 0")
    return weight


@shipping_bp.post("/cost")
def shipping_cost():
    """
    Shipping cost for a parcel.

    Request body (form or JSON):
    - origin: str (required) - origin city id
    - destination: str (required) - destination city id
    - weight: int (required) - grams
    - courier: str (optional) - defaults to RAJAONGKIR_COURIER
    """
    data = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    data = data or {}

    origin = str(data.get("origin") or "").strip()
    destination = str(data.get("destination") or "").strip()
    if not origin or not destination:
        return jsonify({"error": "origin and destination are required"}), 400

    try:
        weight = _parse_weight(data.get("weight"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        costs = current_app.extensions["shipping"].calculate_cost(
            origin, destination, weight, courier=(data.get("courier") or None)
        )
    except UpstreamError as e:
        return jsonify({"error": str(e)}), 502

    return jsonify({"costs": costs})
