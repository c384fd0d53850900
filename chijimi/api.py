"""
Flask endpoints for chijimi.

    POST /api/optimize           {"text": "..."}
    GET  /api/dictionary/stats

The blueprint reads the DictionaryService from ``app.config``; use
:func:`create_app` to wire one up.
"""

import logging
from typing import Any

from flask import Blueprint, Flask, current_app, jsonify, request

from chijimi.errors import InvalidRequestError, UninitializedDictionaryError
from chijimi.service import DictionaryService

logger = logging.getLogger(__name__)

SERVICE_CONFIG_KEY = "CHIJIMI_SERVICE"

bp = Blueprint("chijimi", __name__, url_prefix="/api")


def _service() -> DictionaryService:
    return current_app.config[SERVICE_CONFIG_KEY]


def _uninitialized(e: UninitializedDictionaryError) -> Any:
    return jsonify({"error": str(e), "code": "dictionary_uninitialized"}), 503


@bp.route("/optimize", methods=["POST"])
def optimize() -> Any:
    """Rewrite the posted text with the live dictionary."""
    data = request.get_json(silent=True)
    text = data.get("text") if isinstance(data, dict) else None

    try:
        result = _service().optimize(text)
    except InvalidRequestError:
        return jsonify({"error": "Text is required"}), 400
    except UninitializedDictionaryError as e:
        return _uninitialized(e)
    except Exception:
        logger.exception("Error processing text")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result.to_dict())


@bp.route("/dictionary/stats", methods=["GET"])
def dictionary_stats() -> Any:
    try:
        return jsonify(_service().stats())
    except UninitializedDictionaryError as e:
        return _uninitialized(e)


def create_app(service: DictionaryService) -> Flask:
    """Build a Flask app serving ``service``."""
    app = Flask(__name__)
    app.config[SERVICE_CONFIG_KEY] = service
    app.json.ensure_ascii = False
    app.register_blueprint(bp)
    return app
