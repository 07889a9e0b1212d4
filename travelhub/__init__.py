from flask import Flask
from flask_cors import CORS
from .config import Config
from .errors import register_error_handlers
from .extensions import db, mail
from .routes import register_routes

def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(Config)
    if isinstance(config_object, dict):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_envvar("APP_SETTINGS", silent=True)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO").upper())

    db.init_app(app)
    mail.init_app(app)

    # Public site and admin dashboard both call the API with bearer tokens
    CORS(app,
         origins=app.config["CORS_ORIGINS"],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    )

    register_error_handlers(app)
    register_routes(app)

    return app
