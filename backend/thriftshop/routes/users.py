# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

# backend/thriftshop/routes/users.py
"""
Admin routes for user management.

Provides endpoints for:
- listing accounts
- creating local accounts (customer or admin)
- editing profile fields and role
- deleting accounts

All endpoints require an administrator session.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User, ROLE_USER, ROLE_ADMIN
from ..services import auth_service
from ..validation import ValidationError
from ..decorators import require_auth, require_admin

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users():
    """
    List all users.

    Query params:
    - include_inactive: bool (default false) - include deactivated users
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)

    users = query.order_by(User.username).all()
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
@require_auth
@require_admin
def create_user():
    """
    Create a new local account.

    Request body:
    - username: str (required)
    - email: str (required)
    - password: str (required)
    - role: "USER" | "ADMIN" (optional, default USER)
    - fullName, phoneNumber, address: str (optional)
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    email = data.get("email")
    password = data.get("password")

    if not all([username, email, password]):
        return jsonify({"error": "username, email, and password required"}), 400

    try:
        user = auth_service.create_user(
            username,
            email,
            password,
            role=(data.get("role") or ROLE_USER).upper(),
            full_name=data.get("fullName"),
            phone_number=data.get("phoneNumber"),
            address=data.get("address"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User id=%s created by admin id=%s", user.id, g.current_user.id)
    return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user(user_id: int):
    """
    Update user details.

    Request body (all optional):
    - username, fullName, phoneNumber, address: str
    - role: "USER" | "ADMIN"
    - is_active: bool
    """
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = request.get_json(silent=True) or {}

    if "role" in data:
        role = str(data["role"]).upper()
        if role not in (ROLE_USER, ROLE_ADMIN):
            return jsonify({"error": f"role must be {ROLE_USER} or {ROLE_ADMIN}"}), 400
        if user.id == g.current_user.id and role != ROLE_ADMIN:
            return jsonify({"error": "You cannot remove your own admin role"}), 400
        user.role = role

    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            db.session.rollback()
            return jsonify({"error": "is_active must be true or false"}), 400
        if user.id == g.current_user.id and not data["is_active"]:
            db.session.rollback()
            return jsonify({"error": "You cannot deactivate your own account"}), 400
        user.is_active = data["is_active"]

    try:
        auth_service.update_profile(user, data)
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    return jsonify({"user": user.to_dict(), "message": "User updated successfully"})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user(user_id: int):
    """Delete an account and its sessions."""
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404
    if user.id == g.current_user.id:
        return jsonify({"error": "You cannot delete your own account"}), 400

    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User id=%s deleted by admin id=%s", user_id, g.current_user.id)
    return jsonify({"message": "User deleted"})
