from flask import Flask, jsonify
from flask_migrate import Migrate
from flask_login import LoginManager
from storeadmin.extensions import db
from storeadmin.config import Config
from storeadmin.errors import register_error_handlers
from storeadmin.middleware import setup_auth_middleware
from storeadmin.services.asset_store import init_asset_store
import logging
import os

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(Config.LOG_FILE, delay=True),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

migrate = Migrate()
login_manager = LoginManager()


def create_app(config_class=Config):
    static_dir = os.path.abspath(
        os.path.join(
            os.path.dirname(__file__),
            "..",
            "static"))
    app = Flask(
        __name__,
        static_folder=static_dir,
        static_url_path="/static",
    )
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=app.config['MIGRATIONS_DIR'])
    login_manager.init_app(app)
    init_asset_store(app)

    # Setup user loader
    from storeadmin.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({
            'success': False,
            'message': 'Access token required',
        }), 401

    # Register blueprints
    from storeadmin.blueprints import (
        addresses,
        auth,
        blogs,
        cart,
        dashboard,
        health,
        kyc,
        orders,
        product_images,
        products,
        returns,
        reviews,
        settings,
        support,
        transactions,
        users,
    )

    # Every blueprint declares absolute routes.
    for module in (
        health,
        auth,
        users,
        products,
        product_images,
        cart,
        orders,
        addresses,
        kyc,
        transactions,
        returns,
        reviews,
        support,
        blogs,
        dashboard,
        settings,
    ):
        app.register_blueprint(module.bp)

    register_error_handlers(app)

    # Setup authentication middleware (API-wide login protection)
    setup_auth_middleware(app)

    # Note: Database tables are managed via Flask-Migrate
    # Use 'flask db upgrade' to create/update tables

    logger.info("Flask application initialized")
    return app
