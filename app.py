from flask import Flask
from dotenv import load_dotenv

load_dotenv()

from config import Config  # noqa: E402  (load_dotenv needs to run first)
from extensions import badge_pollers, login_manager, oplps_api  # noqa: E402  (load_dotenv needs to run first)
from logging_setup import setup_logging  # noqa: E402


def create_app(test_config: dict | None = None) -> Flask:
    """Application factory for the OPLPS loose part dashboard."""

    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    setup_logging(app.config.get("LOG_LEVEL", "INFO"))

    # init extensions
    oplps_api.init_app(app)
    badge_pollers.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Please sign in to continue."
    login_manager.login_message_category = "warning"

    # blueprints
    from modules.auth import bp as auth_bp
    from modules.parts import bp as parts_bp
    from modules.dashboard import bp as dashboard_bp
    from modules.users import bp as users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(parts_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(users_bp)

    from ui_routes import ui
    app.register_blueprint(ui)  # home "/"

    # --- permissions for Jinja templates ---
    from permissions import ui_permissions

    @app.context_processor
    def inject_perms():
        return ui_permissions()

    return app

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
