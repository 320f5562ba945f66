"""
Socket.IO live search: one debounced LiveSearch per connection, results are
emitted back to that connection only.
"""
from functools import partial
import logging

from flask import current_app, request

from . import socketio
from .search import LiveSearch, search_all

logger = logging.getLogger(__name__)

# sid -> LiveSearch
_searches = {}


def _search_for(sid):
    live = _searches.get(sid)
    if live is None:
        app = current_app._get_current_object()

        def emit_results(update):
            socketio.emit("search_results", update.to_dict(), to=sid)

        live = LiveSearch(
            run_search=partial(search_all, app.extensions["session_factory"]),
            on_results=emit_results,
            delay=app.config["SEARCH_DEBOUNCE_SECONDS"],
        )
        _searches[sid] = live
    return live


@socketio.on("search")
def handle_search(data):
    text = ""
    if isinstance(data, dict):
        text = str(data.get("q") or "")
    _search_for(request.sid).submit(text)


@socketio.on("disconnect")
def handle_disconnect(*args):
    live = _searches.pop(request.sid, None)
    if live is not None:
        live.close()
        logger.debug("Closed live search for %s", request.sid)
