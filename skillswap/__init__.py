from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from datetime import datetime
import atexit
import logging
import sys

db = SQLAlchemy()
socketio = SocketIO(async_mode="threading")

logger = logging.getLogger(__name__)


def configure_logging(level):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(test_config=None, supabase=None):
    """
    Application factory.

    - test_config overrides the environment based Config.
    - supabase is an already built client; when omitted one is created from
      SUPABASE_URL / SUPABASE_KEY.
    """
    app = Flask(__name__)
    app.config.from_object("skillswap.config.Config")
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config["LOG_LEVEL"])

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError("DATABASE_URL is not set.")

    if supabase is None:
        from .supabase_client import create_supabase
        supabase = create_supabase(app.config["SUPABASE_URL"], app.config["SUPABASE_KEY"])

    db.init_app(app)

    # handlers must be registered before init_app builds the server
    from . import live  # noqa: F401
    socketio.init_app(app)

    from .supabase_client import make_session_factory
    with app.app_context():
        app.extensions["session_factory"] = make_session_factory(db.engine)

    # One auth context per process, handed to whoever needs it via app.extensions
    from .auth import AuthContext
    auth = AuthContext(supabase)
    auth.subscribe(
        lambda event, user_id: logger.info("Auth event %s for user %s", event.value, user_id)
    )
    app.extensions["auth"] = auth
    atexit.register(auth.close)

    # now() in templates
    @app.context_processor
    def inject_now():
        return {"now": datetime.now}

    from .routes import main
    app.register_blueprint(main)

    from .cli import register_commands
    register_commands(app)

    return app
