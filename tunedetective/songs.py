from pydantic import BaseModel, ConfigDict
from typing import List, Iterable, Tuple

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"
SEPARATOR = " by "


class AlbumArt(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_url: str
    image_hint: str


class Song(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    artist: str
    album_art: AlbumArt

    def same_track(self, other) -> bool:
        # playback identity is (title, artist); two different songs sharing both collide
        return other is not None and self.title == other.title and self.artist == other.artist


PLACEHOLDER_IMAGES: Tuple[AlbumArt, ...] = (
    AlbumArt(image_url="https://picsum.photos/seed/tune1/400/400", image_hint="abstract vinyl"),
    AlbumArt(image_url="https://picsum.photos/seed/tune2/400/400", image_hint="neon city"),
    AlbumArt(image_url="https://picsum.photos/seed/tune3/400/400", image_hint="concert crowd"),
    AlbumArt(image_url="https://picsum.photos/seed/tune4/400/400", image_hint="sunset road"),
    AlbumArt(image_url="https://picsum.photos/seed/tune5/400/400", image_hint="retro cassette"),
    AlbumArt(image_url="https://picsum.photos/seed/tune6/400/400", image_hint="ocean waves"),
)


def placeholder_for(index: int) -> AlbumArt:
    return PLACEHOLDER_IMAGES[index % len(PLACEHOLDER_IMAGES)]


def parse_song_string(song_string: str, index: int) -> Song:
    """
    Parse one model recommendation of the form '"Title" by Artist' into a Song.

    Args:
        song_string (str): raw recommendation string
        index (int): position of the string in the model output, used to pick placeholder art

    Returns:
        Song: title falls back to UNKNOWN_TITLE and artist to UNKNOWN_ARTIST when missing.
        A string without the separator has neither side, so both fall back.
    """
    title, artist = "", ""
    if SEPARATOR in song_string:
        parts = song_string.split(SEPARATOR)
        title = parts[0].strip().replace('"', '')
        artist = parts[1].strip()

    return Song(
        title=title or UNKNOWN_TITLE,
        artist=artist or UNKNOWN_ARTIST,
        album_art=placeholder_for(index),
    )


def parse_recommendations(recommendations: Iterable[str]) -> List[Song]:
    """
    Parse model recommendations, dropping the ones without a usable title.
    Indices for placeholder art follow the raw input order, before filtering.
    """
    songs = [parse_song_string(s, i) for i, s in enumerate(recommendations)]
    return [song for song in songs if song.title != UNKNOWN_TITLE]


def songs_from_session(data) -> Tuple[Song, ...]:
    return tuple(Song.model_validate(d) for d in (data or []))


def songs_to_session(songs: Iterable[Song]) -> List[dict]:
    return [song.model_dump() for song in songs]


# starter playlist shown before the first recommendation
INITIAL_SONGS: Tuple[Song, ...] = tuple(
    Song(title=title, artist=artist, album_art=placeholder_for(i))
    for i, (title, artist) in enumerate([
        ("Blinding Lights", "The Weeknd"),
        ("Dreams", "Fleetwood Mac"),
        ("Levitating", "Dua Lipa"),
        ("Take On Me", "a-ha"),
        ("Redbone", "Childish Gambino"),
        ("Heroes", "David Bowie"),
    ])
)

INITIAL_DESCRIPTION = "A curated selection to get you started. Discover your next favorite song!"
