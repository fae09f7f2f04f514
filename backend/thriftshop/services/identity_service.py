"""
identity_service.py: federated identity verification (Google Sign-In).

The browser obtains an ID token from Google; we hand it to Google's
tokeninfo endpoint and accept the identity only when the audience is our
client id and the email is verified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ..validation import AuthenticationError, UpstreamError

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
VALID_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


@dataclass(frozen=True)
class FederatedIdentity:
    subject: str
    email: str
    name: str | None = None


class GoogleIdentityVerifier:
    def __init__(self, client_id: str, timeout: float = 15.0, transport: httpx.BaseTransport | None = None):
        self.client_id = client_id
        self.timeout = timeout
        self.transport = transport

    def verify(self, id_token: str) -> FederatedIdentity:
        if not self.client_id:
            logger.error("GOOGLE_CLIENT_ID is not configured")
            raise UpstreamError("Google sign-in is not available. Please try again later.")
        if not id_token:
            raise AuthenticationError("Missing identity token")

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as e:
            logger.error("Identity provider request failed: %s", e)
            raise UpstreamError("Google sign-in is not available. Please try again later.") from e

        if response.status_code >= 500:
            logger.error("Identity provider HTTP %s: %s", response.status_code, response.text)
            raise UpstreamError("Google sign-in is not available. Please try again later.")
        if response.status_code != 200:
            raise AuthenticationError("Invalid identity token")

        try:
            claims = response.json()
        except ValueError as e:
            logger.error("Identity provider returned non-JSON body: %s", response.text)
            raise UpstreamError("Google sign-in is not available. Please try again later.") from e
        if claims.get("aud") != self.client_id or claims.get("iss") not in VALID_ISSUERS:
            raise AuthenticationError("Invalid identity token")
        if str(claims.get("email_verified")).lower() != "true" or not claims.get("email"):
            raise AuthenticationError("Google account email is not verified")

        return FederatedIdentity(
            subject=str(claims["sub"]),
            email=claims["email"].strip().lower(),
            name=claims.get("name"),
        )
