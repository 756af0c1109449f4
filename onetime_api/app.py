"""
FLASK APP ENTRY POINT - ONETIME API SERVER
==========================================

Sets up the Flask app, enables CORS and registers the engine blueprint.

Configuration (defaults below, then a mapping passed to create_app, then
ONETIME_* environment variables, e.g. ONETIME_MAX_ENGINES=500).

Run:
    flask --app onetime_api.app run
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from onetime.errors import ModeViolationError, OTPError

from .routes import EngineRegistry, otp_bp

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'MAX_ENGINES': 1000,       # upper bound on engines held in memory
    'MAX_TOLERANCE': 10,       # largest tolerance_prev / tolerance_next a client may ask for
    'CORS_ORIGINS': '*',
}


def create_app(config=None) -> Flask:
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    if config:
        app.config.update(config)
    app.config.from_prefixed_env('ONETIME')

    # Allow a frontend served from another origin to call the API
    CORS(app, origins=app.config['CORS_ORIGINS'])

    app.extensions['onetime_registry'] = EngineRegistry(app.config['MAX_ENGINES'])
    app.register_blueprint(otp_bp)

    @app.errorhandler(ModeViolationError)
    def mode_violation(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(OTPError)
    def otp_error(e):
        return jsonify({"error": str(e)}), 400

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({
            "service": "onetime",
            "endpoints": [
                "POST   /api/engines",
                "GET    /api/engines/<id>",
                "PATCH  /api/engines/<id>",
                "DELETE /api/engines/<id>",
                "GET    /api/engines/<id>/secret",
                "GET    /api/engines/<id>/code",
                "POST   /api/engines/<id>/verify",
            ],
        })

    logger.info("onetime API ready (max %d engines)", app.config['MAX_ENGINES'])
    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True, host='127.0.0.1', port=5000)
