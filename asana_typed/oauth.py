#!/usr/bin/env python3
"""
Asana OAuth Application

Authorization-code flow helpers for an Asana client application and the
bearer-token transport the client sends requests through.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from requests.auth import AuthBase

from .errors import AsanaTokenError

# Configure logging
logger = logging.getLogger(__name__)

AUTH_URL = "https://app.asana.com/-/oauth_authorize"
TOKEN_URL = "https://app.asana.com/-/oauth_token"


class BearerAuth(AuthBase):
    """Injects Authorization: Bearer <token> into every request."""

    def __init__(self, token: str):
        self.token = token

    def __call__(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        return request


def authorized_session(access_token: str) -> requests.Session:
    """A requests session authenticating with the given access token."""
    if not access_token:
        raise AsanaTokenError("An access token is required")
    session = requests.Session()
    session.auth = BearerAuth(access_token.strip())
    session.headers["Accept"] = "application/json"
    return session


class App:
    """
    An Asana client application registered for OAuth.

    Example:
        app = App(client_id, client_secret, redirect_url)
        url = app.auth_code_url(state)
        tokens = app.exchange(code)
        client = app.new_client(tokens)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: Optional[str] = None,
        display_ui: bool = False,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        # Force the permission prompt even if the user already authorized
        self.display_ui = display_ui
        self._session = session or requests.Session()
        self._timeout = timeout

    def auth_code_url(self, state: str) -> str:
        """URL to send the user to for granting access."""
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "state": state,
        }
        if self.redirect_url:
            params["redirect_uri"] = self.redirect_url
        base = AUTH_URL
        if self.display_ui:
            base += "?display_ui=always"
            return f"{base}&{urlencode(params)}"
        return f"{base}?{urlencode(params)}"

    def exchange(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code for tokens."""
        return self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_url or "",
        })

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """
        Obtain a new access token from a refresh token.

        The previous refresh token is kept when the server does not rotate it.
        """
        if not refresh_token:
            raise AsanaTokenError("No refresh token available")
        tokens = self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        tokens.setdefault("refresh_token", refresh_token)
        return tokens

    def new_client(self, tokens: Dict[str, Any], **kwargs):
        """Create an API client authenticated with the given tokens."""
        from .client import Client

        return Client(session=authorized_session(tokens["access_token"]), **kwargs)

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        payload = dict(data)
        payload["client_id"] = self.client_id
        payload["client_secret"] = self.client_secret

        try:
            resp = self._session.post(TOKEN_URL, data=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise AsanaTokenError(f"Token request failed: {e}") from e

        if not resp.ok:
            detail = resp.text[:500] if resp.text else "No error details"
            raise AsanaTokenError(
                f"Token request failed (HTTP {resp.status_code}): {detail}"
            )

        try:
            tokens = resp.json()
        except ValueError as e:
            raise AsanaTokenError(f"Token response is not JSON: {e}") from e

        if "access_token" not in tokens:
            raise AsanaTokenError("Token response missing access_token")

        expires_in = tokens.get("expires_in", 3600)
        tokens["expires_at"] = (
            datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        ).isoformat()
        logger.info(f"Obtained access token via {data['grant_type']}")
        return tokens
