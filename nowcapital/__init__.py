# nowcapital/__init__.py
from flask import Flask


def create_app(config=None):
    app = Flask(__name__)

    # .env / .env.local are loaded by nowcapital.models; config here only overrides
    app.config.from_mapping(config or {})

    # Register Blueprints
    from nowcapital.routes import bp_nowcapital
    app.register_blueprint(bp_nowcapital)

    return app
