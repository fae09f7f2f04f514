# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/thriftshop/routes/auth.py
"""
Authentication and credential routes.

- /login is the administrator gate: bad credentials and non-admin accounts
  get distinct error codes so the UI can offer the right next step.
- /customer-login and /google are the storefront sign-in paths.
- change-password, forgot-password and reset-password manage local
  credentials; federated-only accounts are refused.

Every route accepts form data or JSON.
"""

from flask import Blueprint, request, jsonify, current_app, redirect, g

from ..services import auth_service
from ..services import session_service
from ..validation import (
    ValidationError,
    ConflictError,
    AuthenticationError,
    AuthorizationError,
    FederatedAccountError,
    UpstreamError,
)
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
NOT_ADMIN = "NOT_ADMIN"
RESET_REQUESTED_MESSAGE = "If this email is registered, a reset link has been sent."


def _payload() -> dict:
    """Form fields or JSON body, whichever the client sent."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _session_response(user, message: str):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }), 200


def _credentials(data: dict) -> tuple[str | None, str | None]:
    identifier = data.get("username") or data.get("email") or data.get("identifier")
    return identifier, data.get("password")


@auth_bp.post("/login")
def login_route():
    """
    Administrator login.

    Returns:
    - 200 with session token for ADMIN accounts
    - 401 {"code": "INVALID_CREDENTIALS"} for unknown user / wrong password /
      federated-only account
    - 403 {"code": "NOT_ADMIN"} for valid credentials without the ADMIN role
    """
    identifier, password = _credentials(_payload())
    if not identifier or not password:
        return jsonify({"error": "username/email and password required"}), 400

    try:
        user = auth_service.authenticate_admin(identifier, password)
        return _session_response(user, "Login successful")
    except AuthenticationError:
        return jsonify({
            "error": "Incorrect username or password. Please check and try again.",
            "code": INVALID_CREDENTIALS,
        }), 401
    except AuthorizationError:
        return jsonify({
            "error": "This account does not have admin access. Please sign in with an admin account.",
            "code": NOT_ADMIN,
        }), 403
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/customer-login")
def customer_login_route():
    """Storefront login with local credentials (any role)."""
    identifier, password = _credentials(_payload())
    if not identifier or not password:
        return jsonify({"error": "username/email and password required"}), 400

    try:
        user = auth_service.authenticate(identifier, password)
        return _session_response(user, "Login successful")
    except AuthenticationError:
        return jsonify({
            "error": "Incorrect username or password. Please check and try again.",
            "code": INVALID_CREDENTIALS,
        }), 401
    except Exception:
        current_app.logger.exception("Failed to login customer")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/google")
def google_login_route():
    """
    Federated sign-in.

    Request body:
    - id_token: str (required) - Google ID token from the browser

    Unknown identities are registered as federated-only customer accounts.
    """
    id_token = _payload().get("id_token")
    if not id_token:
        return jsonify({"error": "id_token is required"}), 400

    try:
        identity = current_app.extensions["identity"].verify(id_token)
        user = auth_service.sign_in_federated(identity)
        return _session_response(user, "Login successful")
    except AuthenticationError as e:
        return jsonify({"error": str(e), "code": INVALID_CREDENTIALS}), 401
    except UpstreamError as e:
        return jsonify({"error": str(e)}), 502
    except Exception:
        current_app.logger.exception("Failed federated login")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return jsonify({"error": "Authorization header required"}), 401

    token = auth_header.split(" ", 1)[1]

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """Validate session token and return the current user."""
    return jsonify({"user": g.current_user.to_dict(), "message": "Token valid"}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    Form fields: oldPassword, newPassword

    Returns:
    - 302 redirect to CHANGE_PASSWORD_SUCCESS_URL on success
    - 400 missing fields / wrong old password / same password / too short
    - 403 federated-only account
    """
    data = _payload()
    try:
        auth_service.change_password(g.current_user, data.get("oldPassword"), data.get("newPassword"))
    except FederatedAccountError as e:
        return jsonify({"error": str(e)}), 403
    except (ValidationError, ConflictError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password for user id=%s", g.current_user.id)
        return jsonify({"error": "Internal server error"}), 500

    session_service.revoke_all_user_sessions(
        g.current_user.id,
        reason="Password changed",
        keep_session_id=g.session_context.session.id,
    )
    return redirect(current_app.config["CHANGE_PASSWORD_SUCCESS_URL"])


@auth_bp.post("/forgot-password")
def forgot_password_route():
    """
    Send a password reset link to an email address.

    The response is the same whether or not the email is registered.
    resend_after_seconds is the client-side cooldown before offering "resend".
    """
    try:
        auth_service.begin_password_reset(
            _payload().get("email"),
            mailer=current_app.extensions["mailer"],
        )
    except ValidationError as e:
        return jsonify({"error": str(e), "success": False}), 400
    except UpstreamError as e:
        return jsonify({"error": str(e), "success": False}), 502
    except Exception:
        current_app.logger.exception("Failed to start password reset")
        return jsonify({"error": "Internal server error", "success": False}), 500

    return jsonify({
        "message": RESET_REQUESTED_MESSAGE,
        "success": True,
        "resend_after_seconds": current_app.config["OTP_RESEND_COOLDOWN_SECONDS"],
    }), 200


@auth_bp.post("/reset-password")
def reset_password_route():
    """
    Consume a reset token.

    Form fields: token, newPassword, confirmPassword
    """
    data = _payload()
    try:
        auth_service.reset_password(data.get("token"), data.get("newPassword"), data.get("confirmPassword"))
    except ValidationError as e:
        return jsonify({"error": str(e), "success": False}), 400
    except Exception:
        current_app.logger.exception("Error during password reset")
        return jsonify({"error": "Something went wrong while resetting the password.", "success": False}), 500

    return jsonify({
        "message": "Password has been reset. You can now log in.",
        "success": True,
    }), 200
