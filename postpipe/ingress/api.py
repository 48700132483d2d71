# ==============================================================================
# Ingress HTTP API
# ==============================================================================
"""
Flask application accepting post write requests.

POST /create-post validates the JSON body against the Post model and
publishes it to Kafka. The response reflects only the publish step;
consumption and storage happen later in the consumer process.

    201 {"message": "Post created successfully"}   published
    400 {"error": "Invalid request body", ...}     validation failed, nothing published
    500 {"error": "Failed to send message"}        publish failed
"""

import logging
from typing import Protocol

from flask import Flask, jsonify, request
from pydantic import ValidationError

from postpipe.core.models import Post

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Anything that can publish a post (KafkaPostPublisher in production)."""

    def publish(self, post: Post) -> None: ...


def create_app(publisher: Publisher) -> Flask:
    """
    Build the ingress Flask app around a connected publisher.

    Args:
        publisher: Shared publisher used by every request

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    @app.route("/create-post", methods=["POST"])
    def create_post():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            body = {"error": "Invalid request body", "details": ["Expected a JSON object"]}
            return jsonify(body), 400

        try:
            post = Post.model_validate(payload)
        except ValidationError as e:
            details = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            return jsonify({"error": "Invalid request body", "details": details}), 400

        try:
            publisher.publish(post)
        except Exception as e:
            logger.exception("Error sending message to Kafka: %s", e)
            return jsonify({"error": "Failed to send message"}), 500

        return jsonify({"message": "Post created successfully"}), 201

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    return app
