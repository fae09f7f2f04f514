# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and Credential Service

Local credentials (bcrypt), the admin login gate, federated sign-in linking,
password change and token-based password reset.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Federated-only accounts (password_hash IS NULL) never pass local login or
  local password change
- Reset tokens are random URL-safe strings, stored as SHA-256 hashes with an
  expiry, and are single-use
- Unknown and expired reset tokens fail with the same message
- Plaintext passwords and reset tokens are never logged
"""

import secrets
from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, ROLE_USER, ROLE_ADMIN
from ..validation import (
    ValidationError,
    ConflictError,
    AuthenticationError,
    AuthorizationError,
    FederatedAccountError,
    UpstreamError,
)
from .identity_service import FederatedIdentity
from .session_service import hash_token
from thriftshop.time_utils import utcnow

DEFAULT_MIN_PASSWORD_LENGTH = 6
INVALID_RESET_TOKEN = "Invalid or expired token."
RESET_TOKEN_BYTES = 32


def _min_password_length() -> int:
    return int(current_app.config.get("PASSWORD_MIN_LENGTH", DEFAULT_MIN_PASSWORD_LENGTH))


def validate_password_strength(password: str) -> None:
    min_length = _min_password_length()
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters long.")


def hash_password(password: str) -> str:
    """Hash password using bcrypt (salted, slow)."""
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    A NULL hash (federated-only account) never verifies.
    bcrypt.checkpw() is timing-safe.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_user(
    username: str,
    email: str,
    password: str | None = None,
    role: str = ROLE_USER,
    full_name: str | None = None,
    phone_number: str | None = None,
    address: str | None = None,
) -> User:
    """
    Create a local account (or a federated-only one when password is None).

    Raises:
        ValidationError: missing username/email, weak password, bad role,
                         or username/email already taken
    """
    username = (username or "").strip()
    email = _normalize_email(email)
    if not username or not email:
        raise ValidationError("username and email are required")
    if role not in (ROLE_USER, ROLE_ADMIN):
        raise ValidationError(f"role must be {ROLE_USER} or {ROLE_ADMIN}")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ValidationError("Username or email already exists")

    password_hash = None
    if password is not None:
        validate_password_strength(password)
        password_hash = hash_password(password)

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role,
        full_name=full_name,
        phone_number=phone_number,
        address=address,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User:
    """
    Authenticate with username or email and password.

    Raises AuthenticationError for unknown users, wrong passwords, inactive
    and federated-only accounts alike.
    """
    identifier = (identifier or "").strip()
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower()),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def require_admin(user: User) -> User:
    if not user.is_admin:
        raise AuthorizationError("Administrator access required")
    return user


def authenticate_admin(identifier: str, password: str) -> User:
    """Admin login gate: bad credentials and non-admins fail with distinct errors."""
    return require_admin(authenticate(identifier, password))


def sign_in_federated(identity: FederatedIdentity) -> User:
    """
    Link a verified federated identity to an account.

    Lookup order: provider subject, then email. Unknown identities get a new
    federated-only USER (no local password).
    """
    user = db.session.query(User).filter_by(google_sub=identity.subject).first()
    if user is None:
        user = db.session.query(User).filter_by(email=identity.email).first()
        if user is not None:
            user.google_sub = identity.subject

    if user is None:
        user = User(
            username=_unique_username(identity.email.split("@", 1)[0]),
            email=identity.email,
            password_hash=None,
            google_sub=identity.subject,
            full_name=identity.name,
            role=ROLE_USER,
            is_active=True,
        )
        db.session.add(user)

    if not user.is_active:
        db.session.rollback()
        raise AuthenticationError("Account is deactivated")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def _unique_username(base: str) -> str:
    base = (base or "user")[:56]
    candidate = base
    suffix = 1
    while db.session.query(User.id).filter_by(username=candidate).first():
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


def change_password(user: User, old_password: str | None, new_password: str | None) -> None:
    """
    Replace the caller's password.

    Raises:
        FederatedAccountError: account has no local password (checked first)
        ValidationError: missing fields, wrong old password, weak new password
        ConflictError: new password equals the old one
    """
    if user.password_hash is None:
        raise FederatedAccountError(
            "Google accounts cannot change their password here. Use your Google Account settings."
        )

    if not old_password or not new_password:
        raise ValidationError("All fields are required.")

    if not verify_password(old_password, user.password_hash):
        raise ValidationError("Old password is incorrect.")

    if old_password == new_password:
        raise ConflictError("New password must be different from the old password.")

    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    db.session.commit()


def begin_password_reset(email: str | None, *, mailer) -> bool:
    """
    Issue a single-use reset token for the account with this email and mail it.

    Returns True when a token was issued. Unknown emails and federated-only
    accounts return False without touching anything, so callers can respond
    identically either way.

    Raises:
        ValidationError: email missing
        UpstreamError: mail dispatch failed (token is revoked again)
    """
    email = _normalize_email(email)
    if not email:
        raise ValidationError("Email is required.")

    user = db.session.query(User).filter_by(email=email, is_active=True).first()
    if user is None or user.password_hash is None:
        return False

    ttl_minutes = int(current_app.config.get("PASSWORD_RESET_TTL_MINUTES", 10))
    token = secrets.token_urlsafe(RESET_TOKEN_BYTES)

    user.reset_token_hash = hash_token(token)
    user.reset_token_expires_at = utcnow() + timedelta(minutes=ttl_minutes)
    db.session.commit()

    try:
        mailer.send_password_reset(
            user.email,
            token,
            reset_url=current_app.config.get("PASSWORD_RESET_URL", "/reset-password"),
            expires_minutes=ttl_minutes,
        )
    except UpstreamError:
        user.reset_token_hash = None
        user.reset_token_expires_at = None
        db.session.commit()
        raise

    return True


def reset_password(token: str | None, new_password: str | None, confirm_password: str | None) -> User:
    """
    Consume a reset token and set a new password.

    Raises:
        ValidationError: missing fields, too short, mismatch, or an unknown /
                         expired token (one message for both)
    """
    if not token or not new_password or not confirm_password:
        raise ValidationError("Token, new password, and password confirmation are required.")

    validate_password_strength(new_password)

    if new_password != confirm_password:
        raise ValidationError("Password and password confirmation do not match.")

    user = db.session.query(User).filter(
        User.reset_token_hash == hash_token(token),
        User.password_hash.isnot(None),
        User.reset_token_expires_at >= utcnow(),
    ).first()
    if user is None:
        raise ValidationError(INVALID_RESET_TOKEN)

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.session.commit()
    return user


PROFILE_FIELDS = {
    # request key -> column
    "username": "username",
    "fullName": "full_name",
    "full_name": "full_name",
    "phoneNumber": "phone_number",
    "phone_number": "phone_number",
    "address": "address",
}


def update_profile(user: User, data: dict) -> User:
    """
    Update profile fields of an account. Unknown keys are ignored.

    Raises:
        ValidationError: blank or taken username, over-long values
    """
    changes = {}
    for key, column in PROFILE_FIELDS.items():
        if key in data and data[key] is not None:
            changes[column] = str(data[key]).strip()

    if "username" in changes:
        username = changes["username"]
        if not username:
            raise ValidationError("username cannot be blank")
        if len(username) > 64:
            raise ValidationError("username exceeds max length 64")
        taken = db.session.query(User.id).filter(User.username == username, User.id != user.id).first()
        if taken:
            raise ValidationError("Username already in use")

    if len(changes.get("phone_number") or "") > 32:
        raise ValidationError("phone_number exceeds max length 32")
    if len(changes.get("full_name") or "") > 255:
        raise ValidationError("full_name exceeds max length 255")

    for column, value in changes.items():
        if column != "username" and value == "":
            value = None
        setattr(user, column, value)

    db.session.commit()
    return user
