"""Credential resolution for the webhook service.

GitHub token, in order (stops at first success):
  1. GITHUB_TOKEN environment variable (already copied into the config)
  2. `gh auth token` (GitHub CLI session, handy when running locally)

Webhook secret: GITHUB_WEBHOOK_SECRET or ``webhook_secret`` in the config.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token(config: dict | None = None) -> str | None:
    """Return a GitHub token or None if no source has one. Never raises."""
    token = (config or {}).get("github_token") or os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None


def resolve_webhook_secret(config: dict | None = None) -> str | None:
    return (config or {}).get("webhook_secret") or os.environ.get("GITHUB_WEBHOOK_SECRET") or None
