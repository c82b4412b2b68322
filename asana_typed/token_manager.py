#!/usr/bin/env python3
"""
Asana OAuth Token Manager

Manages OAuth token lifecycle: loading, saving, refreshing, and expiry
checking. Supports two token sources: a static token from the environment and
a local token file with automatic refresh.

Design Philosophy:
- Fail loudly with clear error messages
- Automatic token refresh when expired
- Secure token storage with proper file permissions
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import AsanaTokenError
from .infrastructure import DEFAULT_TOKEN_FILE, get_config, raise_alert
from .oauth import App

# Configure logging
logger = logging.getLogger(__name__)

# Refresh tokens that expire within this many seconds
REFRESH_MARGIN_SECONDS = 1800


def _parse_expiry(expires_at: Any) -> datetime:
    if isinstance(expires_at, (int, float)):
        return datetime.fromtimestamp(expires_at, tz=timezone.utc)
    expiry = datetime.fromisoformat(str(expires_at).replace("Z", "+00:00"))
    if expiry.tzinfo is None:
        # Timestamps without an offset are written in UTC
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry


class TokenManager:
    """
    Manages OAuth token lifecycle for Asana API access.

    Token resolution order:
    1. Static token from environment (ASANA_ACCESS_TOKEN)
    2. Local file-based OAuth tokens with auto-refresh

    Example:
        manager = TokenManager(token_file_path)
        token = manager.get_valid_token()  # Returns valid token, refreshing if needed
    """

    def __init__(
        self,
        token_file: Optional[Path] = None,
        warn_threshold_seconds: int = 300,
        refresh_help_command: Optional[str] = None,
        app: Optional[App] = None,
    ):
        """
        Initialize TokenManager.

        Args:
            token_file: Path to JSON file storing OAuth tokens (default: ~/.config/asana/tokens.json)
            warn_threshold_seconds: Warning threshold for token expiry (default 5 minutes)
            refresh_help_command: Command to show in error messages for re-authentication
            app: OAuth application used for refresh (default: built from configuration)
        """
        self.token_file = Path(token_file) if token_file else DEFAULT_TOKEN_FILE
        self.warn_threshold_seconds = warn_threshold_seconds
        self.refresh_help_command = refresh_help_command or "re-authenticate with Asana OAuth"
        self._app = app

    @property
    def app(self) -> App:
        if self._app is None:
            config = get_config()
            if not config.client_id or not config.client_secret:
                raise AsanaTokenError(
                    "ASANA_CLIENT_ID or ASANA_CLIENT_SECRET not set in environment.\n"
                    "Check .env file or environment variables."
                )
            self._app = App(config.client_id, config.client_secret, config.redirect_url)
        return self._app

    def get_valid_token(self) -> str:
        """
        Get a valid access token, refreshing if necessary.

        Returns:
            Valid access token string

        Raises:
            AsanaTokenError: If unable to get valid token
        """
        env_token = os.environ.get("ASANA_ACCESS_TOKEN")
        if env_token:
            logger.debug(
                "Using ASANA_ACCESS_TOKEN from environment variable (no auto-refresh)"
            )
            return env_token.strip()

        tokens = self.load_tokens()

        if self.is_token_expired(tokens):
            logger.info("Access token expired or expiring soon, refreshing...")
            tokens = self.refresh_token(tokens)

        self.check_token_expiry_warning(tokens)

        return tokens["access_token"]

    def load_tokens(self) -> Dict[str, Any]:
        """
        Load OAuth tokens from JSON file.

        Raises:
            AsanaTokenError: If tokens cannot be loaded
        """
        if not self.token_file.exists():
            raise AsanaTokenError(
                f"Token file not found: {self.token_file}\n"
                f"Please {self.refresh_help_command}"
            )

        try:
            with open(self.token_file) as f:
                tokens = json.load(f)
        except json.JSONDecodeError as e:
            raise AsanaTokenError(
                f"Token file is corrupt: {e}\n"
                f"Please {self.refresh_help_command}"
            ) from e

        if "access_token" not in tokens:
            raise AsanaTokenError(
                f"Invalid token file: missing access_token\n"
                f"Please {self.refresh_help_command}"
            )

        logger.debug("Loaded tokens from JSON file")
        return tokens

    def save_tokens(self, tokens: Dict[str, Any]):
        """Save OAuth tokens to JSON file readable only by the owner."""
        self.token_file.parent.mkdir(parents=True, exist_ok=True)

        with open(self.token_file, "w") as f:
            json.dump(tokens, f, indent=2)

        os.chmod(self.token_file, 0o600)

        logger.info(f"Tokens saved to {self.token_file} (permissions: 0600)")

    def is_token_expired(self, tokens: Dict[str, Any]) -> bool:
        """True if the access token is expired or expires in under 30 minutes."""
        expires_at = tokens.get("expires_at")
        if not expires_at:
            return True

        try:
            expiry_time = _parse_expiry(expires_at)
        except (ValueError, TypeError) as e:
            logger.warning(f"Could not parse expiry time: {e}")
            return True

        remaining = expiry_time - datetime.now(timezone.utc)
        return remaining.total_seconds() < REFRESH_MARGIN_SECONDS

    def refresh_token(self, tokens: Dict[str, Any]) -> Dict[str, Any]:
        """
        Refresh the access token and persist the new token set.

        Raises:
            AsanaTokenError: If refresh fails
        """
        refresh_token = tokens.get("refresh_token")
        if not refresh_token:
            raise AsanaTokenError(
                f"No refresh token available. Please re-authenticate.\n"
                f"Please {self.refresh_help_command}"
            )

        try:
            new_tokens = self.app.refresh(refresh_token)
        except AsanaTokenError as e:
            raise_alert(
                severity="critical",
                category="auth_expired",
                message="Asana authentication token has expired and refresh failed",
                context={
                    "error": str(e),
                    "remediation": self.refresh_help_command,
                },
            )
            raise

        new_tokens["updated_at"] = datetime.now(timezone.utc).isoformat()

        # Preserve user data
        if "data" in tokens:
            new_tokens["data"] = tokens["data"]

        self.save_tokens(new_tokens)
        logger.info("Access token refreshed successfully")
        return new_tokens

    def check_token_expiry_warning(self, tokens: Dict[str, Any]) -> None:
        """Raise a warning alert if the token expires within the threshold."""
        expires_at = tokens.get("expires_at")
        if not expires_at:
            return

        try:
            expiry_time = _parse_expiry(expires_at)
        except (ValueError, TypeError) as e:
            logger.debug(f"Could not check token expiry warning: {e}")
            return

        seconds_remaining = (expiry_time - datetime.now(timezone.utc)).total_seconds()
        if 0 < seconds_remaining < self.warn_threshold_seconds:
            raise_alert(
                severity="warning",
                category="token_expiring_soon",
                message=f"Asana OAuth token expires in {int(seconds_remaining // 60)} minutes",
                context={
                    "expiry_time": expiry_time.isoformat(),
                    "seconds_remaining": int(seconds_remaining),
                    "remediation": f"Token will auto-refresh on next API call, or {self.refresh_help_command}",
                },
            )
