from PIL import Image
from pydantic import BaseModel
from typing import List, Optional
import logging
import traceback

from .errors import EmptyResultError, UploadError
from .results import Ok, Err, VALIDATION, EXTERNAL, EMPTY
from .songs import Song, parse_recommendations
from .utils import (AUDIO_MIME_TYPES, IMAGE_MIME_TYPES, read_upload, to_data_uri,
                    resize_image_by_longest_side)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MIN_PROMPT_LENGTH = 3

NO_RECOMMENDATIONS = "Could not generate recommendations. Try a different prompt."
UNEXPECTED_FORMAT = "AI returned recommendations in an unexpected format. Please try again."
AI_SERVICE_ERROR = "An unexpected error occurred with the AI service."


class SongMetadata(BaseModel):
    artist: str
    title: str


class RecommendationState(BaseModel):
    songs: Optional[List[Song]] = None
    description: Optional[str] = None
    error: Optional[str] = None


class AnalysisState(BaseModel):
    metadata: Optional[SongMetadata] = None
    error: Optional[str] = None


class EmotionState(BaseModel):
    songs: Optional[List[Song]] = None
    description: Optional[str] = None
    text: Optional[str] = None
    emotion: Optional[str] = None
    error: Optional[str] = None


def get_songs_and_description(prompt: str, model):
    """
    Recommend songs for `prompt`, parse them, then describe the parsed playlist.
    The description call always runs after, and depends on, the recommendation call.

    Raises:
        EmptyResultError: if the model returns nothing or nothing parseable
        ModelCallError, ModelResponseError: if a model call fails
    """
    recommendations = model.recommend(prompt)
    if not recommendations:
        raise EmptyResultError(NO_RECOMMENDATIONS)

    songs = parse_recommendations(recommendations)
    if not songs:
        raise EmptyResultError(UNEXPECTED_FORMAT)

    song_metadatas = [{"title": s.title, "artist": s.artist} for s in songs]
    description = model.describe_playlist(song_metadatas, prompt)
    return songs, description


def _failure(e: Exception, fallback: str) -> Err:
    if isinstance(e, EmptyResultError):
        return Err(EMPTY, str(e))
    logger.error(f"Model call failed: {e}\n" + traceback.format_exc())
    return Err(EXTERNAL, fallback)


def get_recommendations(prompt, model):
    # raw length, surrounding whitespace included
    prompt = prompt or ""
    if len(prompt) < MIN_PROMPT_LENGTH:
        return Err(VALIDATION, "Prompt must be at least 3 characters long.", field="prompt")

    try:
        songs, description = get_songs_and_description(prompt, model)
    except Exception as e:
        return _failure(e, AI_SERVICE_ERROR)

    return Ok(RecommendationState(songs=songs, description=description))


def analyze_song(audio_file, model):
    try:
        content, mime_type = read_upload(
            audio_file, AUDIO_MIME_TYPES,
            "Please select an audio file.",
            "Invalid file type. Please upload an MP3, WAV, or OGG file."
        )
    except UploadError as e:
        return Err(VALIDATION, str(e), field="audioFile")

    try:
        metadata = model.extract_song_metadata(to_data_uri(content, mime_type))
    except Exception as e:
        return _failure(e, "Could not analyze song. The audio might not be recognized or the file may be too large.")

    if not metadata.get("artist") or not metadata.get("title"):
        return Err(EMPTY, "Could not identify song. Please try a different audio file.")

    return Ok(AnalysisState(metadata=SongMetadata(artist=metadata["artist"], title=metadata["title"])))


def get_emotion_recommendations(image_file, model):
    try:
        content, mime_type = read_upload(
            image_file, IMAGE_MIME_TYPES,
            "Please select an image file.",
            "Invalid file type. Please upload a JPG, PNG, or WebP file."
        )
        content = resize_image_by_longest_side(content, mime_type)
    except UploadError as e:
        return Err(VALIDATION, str(e), field="imageFile")
    except (OSError, Image.DecompressionBombError) as e:
        # undecodable, or too many pixels to open safely
        logger.warning(f"Unreadable image upload: {e}")
        return Err(VALIDATION, "The image could not be read. Please upload a valid JPG, PNG, or WebP file.",
                   field="imageFile")

    try:
        text = model.extract_text_from_image(to_data_uri(content, mime_type)).get("text", "")
        if not text:
            logger.warning("No text found in uploaded image")
            return Err(EMPTY, "No text could be found in the image.", partial={"text": text})

        emotion = model.detect_emotion(text)
        songs, description = get_songs_and_description(emotion, model)
    except Exception as e:
        return _failure(e, AI_SERVICE_ERROR)

    return Ok(EmotionState(songs=songs, description=description, text=text, emotion=emotion))
