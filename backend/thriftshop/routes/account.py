# Overview: Flask API routes for the caller's own account profile.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..validation import ValidationError
from ..decorators import require_auth

account_bp = Blueprint("account", __name__, url_prefix="/api/account")


@account_bp.get("")
@require_auth
def get_account():
    """Profile of the signed-in user, including is_federated for the UI."""
    return jsonify({"user": g.current_user.to_dict()})


@account_bp.post("")
@require_auth
def update_account():
    """
    Update the signed-in user's profile.

    Fields (form or JSON, all optional): username, fullName, phoneNumber, address
    Email is not editable here; it identifies the account.
    """
    data = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    try:
        user = auth_service.update_profile(g.current_user, data or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update account id=%s", g.current_user.id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "Account updated"})
