from dotenv import load_dotenv
from flask import Flask
from flasgger import Swagger

from .config import Config
from .errors import register_error_handlers
from .extensions import db, migrate, jwt, ma, mail
from .middleware.request_id import init_request_id
from .services import voting_links
from .swagger_config import swagger_template

load_dotenv()

def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    Swagger(app, template=swagger_template(app))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    mail.init_app(app)
    # Raises ConfigurationError on a missing/short VOTE_LINK_SECRET
    voting_links.init_app(app)

    # Models must be imported so SQLAlchemy and Flask-Migrate see the tables
    from . import models  # noqa: F401

    # Middleware + errors
    init_request_id(app)
    register_error_handlers(app)

    # Blueprint imports
    from .api.elections.routes import elections_bp
    from .api.links.routes import links_bp
    from .api.redeem.routes import redeem_bp

    # Blueprints
    app.register_blueprint(elections_bp, url_prefix="/api/elections")
    app.register_blueprint(links_bp, url_prefix="/api/voting-links")
    app.register_blueprint(redeem_bp, url_prefix="/api/vote-links")

    from .cli import links_cli
    app.cli.add_command(links_cli)

    # Health check
    @app.get("/health")
    def health():
        return {"status": "ok"}, 200

    return app
