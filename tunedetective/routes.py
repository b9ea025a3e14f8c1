from . import db
from .actions import get_recommendations, analyze_song, get_emotion_recommendations
from .models import PlaylistHistory
from .player import IDLE, players
from .results import VALIDATION
from .songs import INITIAL_SONGS, INITIAL_DESCRIPTION, songs_from_session, songs_to_session
import uuid, json
from flask import request, render_template, redirect, session, Blueprint, jsonify, current_app
import traceback
import logging


routes = Blueprint('routes', __name__)
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def get_model():
    return current_app.extensions["tunedetective.model"]


def get_user_id():
    if "user_id" not in session:
        session["user_id"] = str(uuid.uuid4())
    return session["user_id"]


def current_playlist():
    if "playlist" not in session:
        return INITIAL_SONGS
    return songs_from_session(session["playlist"])


def get_player():
    return players.get(get_user_id(), current_playlist())


def peek_player_state():
    # reading the state never creates a player
    controller = players.peek(get_user_id())
    return controller.state if controller is not None else IDLE


def player_state_json(state):
    return {
        "status": state.status,
        "current_song": state.current_song.model_dump() if state.current_song else None,
        "current_index": state.current_index,
        "is_playing": state.is_playing,
        "progress": state.progress,
    }


def render_index(error=None, status=200):
    playlist = current_playlist()
    context = {
        "playlist": playlist,
        "description": session.get("description", INITIAL_DESCRIPTION),
        "is_initial": "playlist" not in session,
        "analysis": session.get("analysis"),
        "emotion": session.get("emotion"),
        "error": error,
        "player": player_state_json(peek_player_state()),
    }
    return render_template("index.html", **context), status


def render_error(form, err):
    error = {"form": form, "kind": err.kind, "detail": err.detail, "field": err.field}
    status = 400 if err.kind == VALIDATION else 200
    return render_index(error=error, status=status)


def store_playlist(songs, description, source, prompt):
    """
    Make `songs` the session's playlist and reset playback. Also records the playlist in history;
    a failed history write is logged and otherwise ignored.
    """
    session["playlist"] = songs_to_session(songs)
    session["description"] = description or ""
    session.modified = True
    get_player().replace_playlist(songs)

    try:
        log = PlaylistHistory(
            session_id = get_user_id(),
            source = source,
            prompt = prompt,
            description = description,
            playlist_json = json.dumps(session["playlist"])
        )
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.warning(f"Failed to record playlist history: {e}")


@routes.route("/")
def index():
    return render_index()


@routes.route("/recommend", methods=["POST"])
def recommend():
    prompt = request.form.get("prompt", "")
    result = get_recommendations(prompt, get_model())
    if not result.ok:
        return render_error("recommend", result)

    state = result.value
    store_playlist(state.songs, state.description, "prompt", prompt.strip())
    return redirect("/")


@routes.route("/analyze", methods=["POST"])
def analyze():
    result = analyze_song(request.files.get("audioFile"), get_model())
    if not result.ok:
        session.pop("analysis", None)
        return render_error("analyze", result)

    session["analysis"] = result.value.model_dump()
    return redirect("/")


@routes.route("/emotion", methods=["POST"])
def emotion():
    result = get_emotion_recommendations(request.files.get("imageFile"), get_model())
    if not result.ok:
        # whatever was extracted before the failure (e.g. empty text) is still shown
        session["emotion"] = {"text": result.partial.get("text")} if "text" in result.partial else None
        return render_error("emotion", result)

    state = result.value
    session["emotion"] = {"text": state.text, "emotion": state.emotion}
    store_playlist(state.songs, state.description, "emotion", state.emotion)
    return redirect("/")


@routes.app_errorhandler(413)
def upload_too_large(e):
    form = "analyze" if request.path.startswith("/analyze") else "emotion"
    error = {"form": form, "kind": VALIDATION, "detail": "File is too large.", "field": None}
    return render_index(error=error, status=413)


# ----------------- playback ---------------- #


@routes.route("/player/state")
def player_state():
    return jsonify(player_state_json(peek_player_state()))


@routes.route("/player/play", methods=["POST"])
def player_play():
    data = request.get_json(silent=True) or {}
    index = data.get("index")
    if not isinstance(index, int) or isinstance(index, bool):
        return jsonify({"success": False, "error": "Missing index"}), 400

    try:
        state = get_player().select_song(index)
    except IndexError:
        logger.warning(f"Play request for missing index {index}")
        return jsonify({"success": False, "error": "No song at that index"}), 400
    return jsonify(player_state_json(state))


@routes.route("/player/toggle", methods=["POST"])
def player_toggle():
    return jsonify(player_state_json(get_player().toggle_play_pause()))


@routes.route("/player/next", methods=["POST"])
def player_next():
    return jsonify(player_state_json(get_player().next()))


@routes.route("/player/prev", methods=["POST"])
def player_prev():
    return jsonify(player_state_json(get_player().prev()))


@routes.route("/player/close", methods=["POST"])
def player_close():
    closed = players.close(get_user_id()) is not None
    return jsonify({"success": True, "closed": closed})


# ----------------- history ---------------- #


@routes.route("/history")
def history():
    try:
        rows = (PlaylistHistory.query
                .filter_by(session_id=get_user_id())
                .order_by(PlaylistHistory.timestamp.desc(), PlaylistHistory.id.desc())
                .all())
    except Exception as e:
        logger.error(f"Exception while reading history: {e}\n" + traceback.format_exc())
        return jsonify({"success": False, "error": "Failed to read history"}), 500
    return jsonify({"success": True, "playlists": [row.to_dict() for row in rows]})


@routes.route('/reset')
def reset():
    players.close(get_user_id())
    session.clear()
    return redirect('/')
