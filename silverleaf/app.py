#!/usr/bin/env python3
"""
Silver Leaf University Portal - API server
==========================================
Run: python3 -m silverleaf.app
Then point the portal front end at: http://localhost:3000
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from .auth import init_auth
from .config import HOST, PORT, DEBUG, LOG_LEVEL, MAX_UPLOAD_BYTES
from .routes import register_routes

logger = logging.getLogger(__name__)


def create_app():
    """Build the Flask app with CORS, auth and every API blueprint."""
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES
    CORS(app)

    # Auth hook goes in before the blueprints
    init_auth(app)
    register_routes(app)

    @app.errorhandler(413)
    def upload_too_large(e):
        return jsonify({"error": "Uploaded file is too large"}), 413

    return app


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    logger.info("Starting Silver Leaf portal API on %s:%d", HOST, PORT)
    app.run(host=HOST, port=PORT, debug=DEBUG, threaded=True)


if __name__ == '__main__':
    main()
