"""Flask application exposing the webhook endpoint."""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from prgate_core.dispatcher import Dispatcher
from prgate_core.gh.pull_request import get_client
from prgate_core.gh.status import StatusReporter
from prgate_core.git.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


def build_dispatcher(config: dict) -> Dispatcher:
    """Wire the GitHub client, workspaces and status reporter from a resolved config."""
    client = get_client(config["github_token"], timeout=config["api_timeout"])
    workspaces = WorkspaceManager.from_config(config)
    return Dispatcher(client, workspaces, StatusReporter(config.get("status_target_url")), config)


def create_app(dispatcher: Dispatcher) -> Flask:
    app = Flask("prgate")

    @app.route("/", methods=["POST"])
    @app.route("/webhook", methods=["POST"])
    def webhook():
        signature = request.headers.get("X-Hub-Signature-256") or request.headers.get("X-Hub-Signature")
        event_type = request.headers.get("X-GitHub-Event")
        delivery = request.headers.get("X-GitHub-Delivery", "-")

        response = dispatcher.handle_delivery(event_type, request.get_data(), signature)
        logger.info("delivery=%s event=%s -> %d %s", delivery, event_type, response.status_code, response.message)
        return jsonify({"message": response.message, "degraded": response.degraded}), response.status_code

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"}), 200

    return app
