import base64
import io

import pytest
from PIL import Image

from conftest import image_bytes, make_upload
from tunedetective.errors import UploadError
from tunedetective.utils import (AUDIO_MIME_TYPES, read_upload, resize_image_by_longest_side,
                                 split_data_uri, to_data_uri)


def test_data_uri():
    uri = to_data_uri(b"\x00\x01binary", "audio/wav")
    assert uri == "data:audio/wav;base64," + base64.b64encode(b"\x00\x01binary").decode()
    mime, payload = split_data_uri(uri)
    assert mime == "audio/wav"
    assert base64.b64decode(payload) == b"\x00\x01binary"


@pytest.mark.parametrize("bad", ["audio/wav;base64,AAAA", "data:audio/wav,AAAA", "data:audio/wav;base64,"])
def test_split_rejects_malformed(bad):
    with pytest.raises(ValueError):
        split_data_uri(bad)


def test_read_upload_ok():
    content, mime = read_upload(make_upload(b"ID3...", "clip.mp3", "audio/mpeg"),
                                AUDIO_MIME_TYPES, "missing", "wrong type")
    assert content == b"ID3..."
    assert mime == "audio/mpeg"


@pytest.mark.parametrize("upload, message", [
    (None, "missing"),
    (make_upload(b"", "", "application/octet-stream"), "missing"),
    (make_upload(b"", "clip.mp3", "audio/mpeg"), "missing"),
    (make_upload(b"%PDF", "doc.pdf", "application/pdf"), "wrong type"),
])
def test_read_upload_rejects(upload, message):
    with pytest.raises(UploadError, match=message):
        read_upload(upload, AUDIO_MIME_TYPES, "missing", "wrong type")


def test_small_image_untouched():
    content = image_bytes((100, 50))
    assert resize_image_by_longest_side(content, "image/png") is content


@pytest.mark.parametrize("mime, image_format", [("image/png", "PNG"), ("image/jpeg", "JPEG"), ("image/webp", "WEBP")])
def test_large_image_is_downscaled(mime, image_format):
    content = image_bytes((400, 100), image_format=image_format)
    resized = resize_image_by_longest_side(content, mime, max_longest_side=200)
    image = Image.open(io.BytesIO(resized))
    assert image.size == (200, 50)
    assert image.format == image_format


def test_unreadable_image_raises():
    with pytest.raises(OSError):
        resize_image_by_longest_side(b"not an image", "image/png")
