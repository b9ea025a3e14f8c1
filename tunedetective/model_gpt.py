from openai import OpenAI, OpenAIError
import json
from jsonschema import validate, ValidationError
import logging
import os
import re
from typing import List, Dict, Optional

from .errors import ModelCallError, ModelResponseError
from .prompts import (RECOMMEND_SONGS_PROMPT, PLAYLIST_DESCRIPTION_PROMPT, SONG_METADATA_PROMPT,
                      IMAGE_TEXT_PROMPT, EMOTION_DETECTION_PROMPT)
from .utils import split_data_uri

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

EMOTIONS = ["happy", "sad", "angry", "neutral", "fear", "surprise"]

recommendation_schema = {
    "type": "object",
    "properties": {
        "recommendations": {
            "type": "array",
            "items": { "type": "string" }
        }
    },
    "required": ["recommendations"]
}

description_schema = {
    "type": "object",
    "properties": {
        "description": { "type": "string" }
    },
    "required": ["description"]
}

song_metadata_schema = {
    "type": "object",
    "properties": {
        "artist": { "type": "string" },
        "title": { "type": "string" }
    },
    "required": ["artist", "title"]
}

image_text_schema = {
    "type": "object",
    "properties": {
        "text": { "type": "string" }
    },
    "required": ["text"]
}

emotion_schema = {
    "type": "object",
    "properties": {
        "emotion": { "type": "string", "enum": EMOTIONS }
    },
    "required": ["emotion"],
    "additionalProperties": False
}

# chat completions input_audio only names the container format
AUDIO_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
}

_client = None


def get_client():
    global _client
    if _client is None:
        _client = OpenAI(api_key=os.environ["OPENAI_API_KEY"])
    return _client


def gpt_calling(prompt, content=None, model=None, temperature=0.7):
    """
    Single chat completion. `content` holds extra message parts (image or audio) placed
    before the text prompt.
    """
    model = model or os.getenv("OPENAI_MODEL", "gpt-4o")
    parts = list(content or []) + [{"type": "text", "text": prompt}]

    try:
        response = get_client().chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": parts}],
            temperature=temperature,
            max_tokens=1000
        )
    except (OpenAIError, KeyError) as e:
        raise ModelCallError(f"{model} call failed: {e}") from e

    return response.choices[0].message.content or ""


def gpt_calling_with_image(image_data_uri, prompt):
    content = [{"type": "image_url", "image_url": {"url": image_data_uri}}]
    return gpt_calling(prompt, content=content, temperature=0)


def gpt_calling_with_audio(audio_data_uri, prompt):
    mime_type, payload = split_data_uri(audio_data_uri)
    content = [{
        "type": "input_audio",
        "input_audio": {"data": payload, "format": AUDIO_FORMATS.get(mime_type, "mp3")}
    }]
    model = os.getenv("OPENAI_AUDIO_MODEL", "gpt-4o-audio-preview")
    return gpt_calling(prompt, content=content, model=model, temperature=0)


FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\}|\[.*?\])\s*```", re.DOTALL)


def parse_model_json(reply, schema):
    """
    Turn a model reply into data matching `schema`. Replies wrapped in a ```json fence are
    unwrapped first.

    Raises:
        ModelResponseError: if the reply is not JSON, or does not match the schema
    """
    fenced = FENCED_JSON.search(reply)
    payload = fenced.group(1) if fenced else reply.strip()

    try:
        data = json.loads(payload)
        validate(instance=data, schema=schema)
    except json.JSONDecodeError as e:
        raise ModelResponseError(f"reply is not JSON: {e.msg}") from e
    except ValidationError as e:
        raise ModelResponseError(f"reply does not match schema: {e.message}") from e
    return data


def call_gpt_and_verify(prompt, schema, image_data_uri=None, audio_data_uri=None):
    """
    Call gpt once with prompt (and an optional image or audio attachment) and verify the reply.
    Failed submissions are not retried; the user resubmits.

    Returns:
        dict: Parsed and validated result.

    Raises:
        ModelCallError: If the call itself fails.
        ModelResponseError: If the reply is not JSON matching `schema`.
    """
    if audio_data_uri:
        response = gpt_calling_with_audio(audio_data_uri, prompt)
    elif image_data_uri:
        response = gpt_calling_with_image(image_data_uri, prompt)
    else:
        response = gpt_calling(prompt)

    try:
        return parse_model_json(response, schema)
    except ModelResponseError as e:
        logger.warning(f"Rejected model response: {e}")
        raise


def build_recommendation_prompt(user_prompt: str) -> str:
    return RECOMMEND_SONGS_PROMPT.replace("[INPUT]", user_prompt)


def build_description_prompt(songs: List[Dict[str, str]], theme: Optional[str] = None) -> str:
    """
    Build the playlist description prompt.

    Args:
        songs (list): dicts with 'title' and 'artist'
        theme (str, optional): the prompt or emotion that generated the playlist

    Returns:
        str: The final prompt ready for the description call.
    """
    theme_line = f"The playlist was generated based on the following theme: {theme}\n" if theme else ""
    formatted_songs = "\n".join(f"- {song['title']} by {song['artist']}" for song in songs)
    return (PLAYLIST_DESCRIPTION_PROMPT
            .replace("[THEME]", theme_line)
            .replace("[SONGS]", formatted_songs))


def build_emotion_prompt(text: str) -> str:
    return EMOTION_DETECTION_PROMPT.replace("[INPUT]", text)


class GPTModel:
    """
    The five model capabilities the app relies on. Anything with the same methods can stand in
    for it (tests use a fake).
    """

    def recommend(self, prompt: str) -> List[str]:
        result = call_gpt_and_verify(build_recommendation_prompt(prompt), recommendation_schema)
        return result["recommendations"]

    def describe_playlist(self, songs: List[Dict[str, str]], prompt: Optional[str] = None) -> str:
        result = call_gpt_and_verify(build_description_prompt(songs, prompt), description_schema)
        return result["description"]

    def extract_song_metadata(self, audio_data_uri: str) -> Dict[str, str]:
        result = call_gpt_and_verify(SONG_METADATA_PROMPT, song_metadata_schema, audio_data_uri=audio_data_uri)
        return {"artist": result["artist"].strip(), "title": result["title"].strip()}

    def extract_text_from_image(self, image_data_uri: str) -> Dict[str, str]:
        result = call_gpt_and_verify(IMAGE_TEXT_PROMPT, image_text_schema, image_data_uri=image_data_uri)
        return {"text": result["text"].strip()}

    def detect_emotion(self, text: str) -> str:
        result = call_gpt_and_verify(build_emotion_prompt(text), emotion_schema)
        return result["emotion"]
