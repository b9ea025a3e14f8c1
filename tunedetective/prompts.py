RECOMMEND_SONGS_PROMPT = """
You are a music recommendation expert.

**Task**
Based on the user's description of their music preferences, a mood, or an emotion, recommend a list of 10 songs.
    - Each recommendation must be a real, released song.
    - The format of each recommendation must be "Song Title" by Artist.

**Output**
Return only the following JSON object, no commentary before or after. Your answer must follow this schema:
{
  "recommendations": [
    "\\"<Song Title>\\" by <Artist>",
    ...
  ]
}

User preferences: [INPUT]
"""

PLAYLIST_DESCRIPTION_PROMPT = """
You are a music expert.

**Task**
Generate a short description for a playlist. The description should be no more than 2 sentences long and capture the overall theme or mood of the playlist.
[THEME]
Here are the songs in the playlist:
[SONGS]

**Output**
Return only the following JSON object, no commentary before or after:
{
  "description": "<1-2 sentence description of the playlist>"
}
"""

SONG_METADATA_PROMPT = """
You are a music identification expert.

**Task**
Listen to the attached audio clip and identify the song being played. If the song cannot be recognized, leave both fields as empty strings instead of guessing.

**Output**
Return only the following JSON object, no commentary before or after:
{
  "artist": "<Artist name>",
  "title": "<Song title>"
}
"""

IMAGE_TEXT_PROMPT = """
You are a precise OCR engine.

**Task**
Extract all readable text from the attached image, exactly as written, preserving line breaks. Do not describe the image. If the image contains no text, return an empty string.

**Output**
Return only the following JSON object, no commentary before or after:
{
  "text": "<all text found in the image>"
}
"""

EMOTION_DETECTION_PROMPT = """
You are an expert emotion detector.

**Task**
Analyze the following text and determine the dominant emotion.
Choose one of the following emotions: "happy", "sad", "angry", "neutral", "fear", "surprise".

**Output**
Return only the following JSON object, no commentary before or after:
{
  "emotion": "<one of the emotions above>"
}

Text: [INPUT]
"""
