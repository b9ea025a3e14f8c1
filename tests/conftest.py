import io
import os
import tempfile

import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage

# configure the app before it is imported
_tmp_dir = tempfile.mkdtemp(prefix="tunedetective-tests-")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(_tmp_dir, "test.db"))
os.environ.setdefault("SESSION_FILE_DIR", os.path.join(_tmp_dir, "sessions"))
os.environ.setdefault("MAX_UPLOAD_MB", "1")

from tunedetective import app as flask_app, db  # noqa: E402
from tunedetective.models import PlaylistHistory  # noqa: E402
from tunedetective.player import players  # noqa: E402


RECOMMENDATIONS = [
    '"Bohemian Rhapsody" by Queen',
    '"Hotel California" by Eagles',
    '"Stairway to Heaven" by Led Zeppelin',
]


class FakeModel:
    """Stands in for GPTModel; records every capability call."""

    def __init__(self, recommendations=None, description="Classic rock for long drives.",
                 metadata=None, text="I can't stop smiling today", emotion="happy", fail_on=None):
        self.recommendations = list(RECOMMENDATIONS if recommendations is None else recommendations)
        self.description = description
        self.metadata = metadata if metadata is not None else {"artist": "Queen", "title": "Bohemian Rhapsody"}
        self.text = text
        self.emotion = emotion
        self.fail_on = fail_on
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_on == name:
            raise RuntimeError(f"{name} unavailable")

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    def recommend(self, prompt):
        self._record("recommend", prompt)
        return self.recommendations

    def describe_playlist(self, songs, prompt=None):
        self._record("describe_playlist", songs, prompt)
        return self.description

    def extract_song_metadata(self, audio_data_uri):
        self._record("extract_song_metadata", audio_data_uri)
        return self.metadata

    def extract_text_from_image(self, image_data_uri):
        self._record("extract_text_from_image", image_data_uri)
        return {"text": self.text}

    def detect_emotion(self, text):
        self._record("detect_emotion", text)
        return self.emotion


class FakeTimer:
    """threading.Timer lookalike that only fires when told to."""

    instances = []

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    @property
    def pending(self):
        return self.started and not self.cancelled and not self.fired

    def fire(self):
        self.fired = True
        self.function(*self.args)


def make_upload(content, filename, content_type):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=content_type)


def image_bytes(size=(64, 32), image_format="PNG", color=(200, 30, 30)):
    output = io.BytesIO()
    Image.new("RGB", size, color).save(output, format=image_format)
    return output.getvalue()


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def fake_timers():
    FakeTimer.instances = []
    yield FakeTimer
    FakeTimer.instances = []


@pytest.fixture
def app(fake_model):
    original = flask_app.extensions["tunedetective.model"]
    flask_app.config.update(TESTING=True, SESSION_COOKIE_SECURE=False)
    flask_app.extensions["tunedetective.model"] = fake_model
    yield flask_app
    flask_app.extensions["tunedetective.model"] = original
    players.close_all()
    with flask_app.app_context():
        PlaylistHistory.query.delete()
        db.session.commit()


@pytest.fixture
def client(app):
    return app.test_client()
