#!/usr/bin/env python3
"""
Asana Client Infrastructure

Shared utilities for the Asana client:
- Global configuration read from the environment (and .env)
- Alert hooks (pluggable)
- Error context decorator for accessor functions
"""

import inspect
import logging
import os
from datetime import timedelta
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

from .errors import AsanaClientError, AsanaOperationError, AsanaValidationError

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default URL used to access the Asana API
BASE_URL = "https://app.asana.com/api/1.0"

# Default token file path (can be overridden)
DEFAULT_TOKEN_FILE = Path.home() / ".config" / "asana" / "tokens.json"

AlertCallback = Callable[[str, str, str, Optional[Dict[str, Any]]], None]


def _env_seconds(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number of seconds")
        return None


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


# ============================================================================
# Configuration
# ============================================================================

class AsanaSDKConfig:
    """
    Global configuration for the Asana client.

    Provides:
    - Base URL, timeout and cache expiry defaults for new clients
    - Token sources (static token, token file, OAuth app credentials)
    - Alert callback (for paging systems or other notification channels)
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_defaults()
        return cls._instance

    def _init_defaults(self):
        self.base_url = os.environ.get("ASANA_BASE_URL", BASE_URL).rstrip("/")
        self.access_token = os.environ.get("ASANA_ACCESS_TOKEN")
        self.token_file = Path(os.environ.get("ASANA_TOKEN_FILE", str(DEFAULT_TOKEN_FILE)))
        self.client_id = os.environ.get("ASANA_CLIENT_ID")
        self.client_secret = os.environ.get("ASANA_CLIENT_SECRET")
        self.redirect_url = os.environ.get("ASANA_REDIRECT_URL")
        self.request_timeout = _env_seconds("ASANA_REQUEST_TIMEOUT")

        expiry = _env_seconds("ASANA_CACHE_EXPIRY")
        self.cache_expiry: Optional[timedelta] = (
            timedelta(seconds=expiry) if expiry else None
        )
        self.debug = _env_flag("ASANA_DEBUG")
        self.refresh_help_command = os.environ.get(
            "ASANA_REFRESH_HELP_CMD",
            "re-authenticate with Asana OAuth"
        )

        # Alert callback: (severity, category, message, context) -> None
        self._alert_callback: Optional[AlertCallback] = None

    def reload(self):
        """Re-read settings from the environment, dropping any callbacks."""
        self._init_defaults()

    def set_alert_callback(self, callback: Optional[AlertCallback]):
        """
        Set a callback for raising alerts.

        Args:
            callback: Function that accepts (severity, category, message, context)
                     severity: 'critical', 'urgent', or 'warning'
                     category: Alert category string (e.g., 'auth_failed', 'rate_limit_hit')
                     message: Human-readable alert message
                     context: Optional dict with additional context
        """
        self._alert_callback = callback


def get_config() -> AsanaSDKConfig:
    """Get the global client configuration."""
    return AsanaSDKConfig()


# ============================================================================
# Alert System
# ============================================================================

def raise_alert(
    severity: str,
    category: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Raise an alert for Asana client issues.

    Uses configured alert callback if available, otherwise logs. Alerts are a
    side channel: a failing callback is logged and never propagates.

    Args:
        severity: Alert severity - 'critical', 'urgent', or 'warning'
        category: Alert category (e.g., 'auth_failed', 'rate_limit_hit')
        message: Human-readable alert message
        context: Additional context as key-value pairs
    """
    config = get_config()

    if config._alert_callback:
        try:
            config._alert_callback(severity, category, message, context)
            logger.debug(f"Alert dispatched: [{severity}] {category}: {message}")
            return
        except Exception as e:
            logger.warning(f"Alert callback failed: {e}")

    # Fall back to logging
    log_level = {
        "critical": logging.CRITICAL,
        "urgent": logging.ERROR,
        "warning": logging.WARNING,
    }.get(severity, logging.WARNING)

    logger.log(log_level, f"[ALERT-{severity.upper()}] {category}: {message}")


# ============================================================================
# Error Handling Decorator
# ============================================================================

def with_api_error_handling(operation_fmt: str) -> Callable:
    """
    Decorator adding operation context to errors raised by accessors.

    Pipeline errors are re-raised as AsanaOperationError chained to the
    original, so the classification predicates in errors still see the status
    code and retry hints. Validation errors pass through unchanged.

    Args:
        operation_fmt: Description format string for the operation.
                      Can use {arg_name} placeholders filled from function arguments.

    Example:
        @with_api_error_handling("create external attachment on task {self.gid}")
        def create_external_attachment(self, client, url, name):
            ...
    """
    def decorator(func: Callable) -> Callable:
        sig = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except AsanaValidationError:
                raise
            except AsanaClientError as e:
                bound_args = sig.bind(*args, **kwargs)
                bound_args.apply_defaults()
                try:
                    operation = operation_fmt.format(**bound_args.arguments)
                except (KeyError, ValueError, AttributeError, IndexError):
                    operation = operation_fmt
                logger.debug(f"{operation} failed: {e}")
                raise AsanaOperationError(operation, e) from e

        return wrapper
    return decorator
