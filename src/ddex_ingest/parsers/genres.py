"""Catalog genre resolution.

Delivered genre strings are free text. The downstream catalog accepts a
closed set of genres, so each release and recording is mapped onto that set
when it is parsed.
"""

import logging
from enum import Enum

from ddex_ingest.util import lower_ascii

logger = logging.getLogger(__name__)


class Genre(str, Enum):
    """Genres accepted by the publishing catalog."""

    ALL = "All Genres"
    ELECTRONIC = "Electronic"
    ROCK = "Rock"
    METAL = "Metal"
    ALTERNATIVE = "Alternative"
    HIP_HOP_RAP = "Hip-Hop/Rap"
    EXPERIMENTAL = "Experimental"
    PUNK = "Punk"
    FOLK = "Folk"
    POP = "Pop"
    AMBIENT = "Ambient"
    SOUNDTRACK = "Soundtrack"
    WORLD = "World"
    JAZZ = "Jazz"
    ACOUSTIC = "Acoustic"
    FUNK = "Funk"
    R_AND_B_SOUL = "R&B/Soul"
    DEVOTIONAL = "Devotional"
    CLASSICAL = "Classical"
    REGGAE = "Reggae"
    PODCASTS = "Podcasts"
    COUNTRY = "Country"
    SPOKEN_WORD = "Spoken Word"
    COMEDY = "Comedy"
    BLUES = "Blues"
    KIDS = "Kids"
    AUDIOBOOKS = "Audiobooks"
    LATIN = "Latin"
    LOFI = "Lo-Fi"
    HYPERPOP = "Hyperpop"
    DANCEHALL = "Dancehall"
    TECHNO = "Techno"
    TRAP = "Trap"
    HOUSE = "House"
    TECH_HOUSE = "Tech House"
    DEEP_HOUSE = "Deep House"
    DISCO = "Disco"
    ELECTRO = "Electro"
    JUNGLE = "Jungle"
    PROGRESSIVE_HOUSE = "Progressive House"
    HARDSTYLE = "Hardstyle"
    GLITCH_HOP = "Glitch Hop"
    TRANCE = "Trance"
    FUTURE_BASS = "Future Bass"
    FUTURE_HOUSE = "Future House"
    TROPICAL_HOUSE = "Tropical House"
    DOWNTEMPO = "Downtempo"
    DRUM_AND_BASS = "Drum & Bass"
    DUBSTEP = "Dubstep"
    JERSEY_CLUB = "Jersey Club"
    VAPORWAVE = "Vaporwave"
    MOOMBAHTON = "Moombahton"


GENRE_ALIASES: dict[str, Genre] = {
    "dance": Genre.ELECTRONIC,
    "indierock": Genre.ALTERNATIVE,
    "inspirational": Genre.AMBIENT,
}

_GENRES_BY_KEY: dict[str, Genre] = {lower_ascii(g.value): g for g in Genre}


def resolve_genre(genre: str, sub_genre: str = "") -> Genre | None:
    """Map a delivered genre / sub-genre pair onto a catalog genre.

    The sub-genre is tried first since it is the more specific of the two.
    Matching ignores case and punctuation. When neither matches exactly the
    genre is looked up in a small alias table.

    Args:
        genre: Delivered genre text
        sub_genre: Delivered sub-genre text

    Returns:
        The catalog genre, or None if nothing matched
    """
    if not genre and not sub_genre:
        return None

    for term in (sub_genre, genre):
        key = lower_ascii(term)
        if key and key in _GENRES_BY_KEY:
            return _GENRES_BY_KEY[key]

    alias = GENRE_ALIASES.get(lower_ascii(genre))
    if alias is not None:
        return alias

    logger.warning(f"Failed to resolve genre: sub_genre={sub_genre!r} genre={genre!r}")
    return None
