import base64
import io
from PIL import Image

from .errors import UploadError

AUDIO_MIME_TYPES = ("audio/mpeg", "audio/wav", "audio/ogg", "audio/mp3")
IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")
MAX_IMAGE_SIDE = 2048


def read_upload(file_storage, allowed_types, missing_message, type_message):
    """
    Validate an uploaded file and return its bytes and MIME type.

    Args:
        file_storage: werkzeug FileStorage (or None when the field was not sent)
        allowed_types (tuple): accepted MIME types
        missing_message (str): error text for a missing or empty file
        type_message (str): error text for a disallowed MIME type

    Returns:
        (bytes, str): file content and MIME type

    Raises:
        UploadError: when the file is missing, empty or of the wrong type
    """
    if file_storage is None or not file_storage.filename:
        raise UploadError(missing_message)

    mime_type = (file_storage.mimetype or "").lower()
    content = file_storage.read()
    if not content:
        raise UploadError(missing_message)
    if mime_type not in allowed_types:
        raise UploadError(type_message)

    return content, mime_type


def to_data_uri(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def split_data_uri(data_uri: str):
    """
    Split 'data:<mime>;base64,<payload>' into (mime, payload).
    """
    header, _, payload = data_uri.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64") or not payload:
        raise ValueError("Not a base64 data URI")
    return header[len("data:"):-len(";base64")], payload


def resize_image_by_longest_side(content: bytes, mime_type: str, max_longest_side=MAX_IMAGE_SIDE):
    """
    Shrink an image so that its longest side is at most `max_longest_side`, preserving the
    aspect ratio and the original format. Smaller images are returned untouched.

    Args:
        content (bytes): raw image bytes
        mime_type (str): MIME type of the image, one of IMAGE_MIME_TYPES
        max_longest_side (int): the largest allowed width or height

    Returns:
        bytes: image bytes in the same format
    """
    image = Image.open(io.BytesIO(content))
    original_width, original_height = image.size
    longest = max(original_width, original_height)
    if longest <= max_longest_side:
        return content

    scale = max_longest_side / float(longest)
    new_size = (max(1, int(original_width * scale)), max(1, int(original_height * scale)))
    resized_image = image.resize(new_size, Image.LANCZOS)

    image_format = mime_type.split("/", 1)[1].upper()
    if image_format == "JPEG" and resized_image.mode not in ("RGB", "L"):
        resized_image = resized_image.convert("RGB")

    output = io.BytesIO()
    resized_image.save(output, format=image_format)
    return output.getvalue()
