#!/usr/bin/env python3
"""
Consent Recorder Server.
Accepts consent submissions, stores them in Supabase and notifies Discord.
"""

import logging
import os
from typing import Any, Tuple

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound

from consent_service.config import (
    DEFAULT_LOG_LEVEL,
    ERROR_MESSAGES,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    SERVICE_NAME,
    ConsentConfig,
)
from consent_service.models.consent_event import ConsentPayload
from consent_service.recorder import ConsentRecorder

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT,
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)


def _error(message: str, status: int) -> Tuple[Response, int]:
    return jsonify({"ok": False, "error": message}), status


@app.errorhandler(404)
def not_found(error: NotFound):
    return _error(ERROR_MESSAGES["not_found"], 404)


@app.errorhandler(405)
def method_not_allowed(error: MethodNotAllowed):
    response, status = _error(ERROR_MESSAGES["method_not_allowed"], 405)
    response.headers["Allow"] = ", ".join(error.valid_methods or [])
    return response, status


@app.errorhandler(Exception)
def handle_exception(error):
    if isinstance(error, HTTPException):
        return _error(error.name, error.code)
    logger.error(f"Unhandled exception: {error}", exc_info=True)
    return _error(ERROR_MESSAGES["server_error"], 500)


def _read_body() -> Any:
    """Decoded JSON body, or the form fields when the client posted a form"""
    body = request.get_json(silent=True)
    if body is None and request.form:
        body = request.form.to_dict()
    return body


@app.route("/health", methods=["GET"])
def health() -> Tuple[Response, int]:
    """Health check endpoint

    Returns:
        Tuple of (JSON response, status code)
    """
    config = ConsentConfig.from_env()
    return (
        jsonify(
            {
                "status": "healthy",
                "service": SERVICE_NAME,
                "supabase": "configured" if config.supabase_enabled else "not configured",
                "discord": "configured" if config.discord_enabled else "not configured",
            }
        ),
        200,
    )


# OPTIONS is answered with 405 like every other non-POST method
@app.route("/api/consent", methods=["POST"], provide_automatic_options=False)
def record_consent() -> Tuple[Response, int]:
    """Record a consent submission

    Returns:
        Tuple of (JSON response, status code). Supabase and Discord failures
        are logged and never change the status.
    """
    try:
        payload = ConsentPayload.from_body(_read_body())
        if not payload.consent:
            return _error(ERROR_MESSAGES["consent_missing"], 400)

        recorder = ConsentRecorder(ConsentConfig.from_env())
        recorder.record(request.headers, request.remote_addr)

        return jsonify({"ok": True}), 200
    except Exception as e:
        logger.error(f"Unexpected error in /api/consent: {e}", exc_info=True)
        return _error(ERROR_MESSAGES["server_error"], 500)
