import os

from skillswap import create_app, socketio

app = create_app()

if __name__ == "__main__":
    debug_mode = os.getenv("FLASK_ENV") != "production"
    socketio.run(app, debug=debug_mode, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
