"""OpenURL genre allow-list and resolution."""

from __future__ import annotations

import os
from collections.abc import Iterable

from errors import InvalidGenreError, MissingGenreError

# Priority order matters: when a request carries several genres, the first
# allow-listed one wins. Values are the KEV metadata format the genre selects.
GENRE_FORMATS: dict[str, str] = {
    "journal": "journal",
    "article": "journal",
    "issue": "journal",
    "preprint": "journal",
    "proceeding": "journal",
    "conference": "journal",
    "book": "book",
    "bookitem": "book",
    "report": "book",
    "document": "book",
    "unknown": "journal",
}

_DEFAULT_FORMAT = "journal"


def allowed_genres() -> tuple[str, ...]:
    """Return the allow-list in priority order.

    SFX_GENRES (comma separated) replaces the built-in order for deployments
    whose catalogue uses a different set of genres.
    """
    configured = os.getenv("SFX_GENRES", "")
    genres = [g.strip().lower() for g in configured.split(",") if g.strip()]
    return tuple(genres) if genres else tuple(GENRE_FORMATS)


def genre_format(genre: str) -> str:
    """Metadata format (``journal`` or ``book``) used to describe ``genre``."""
    return GENRE_FORMATS.get(genre.lower(), _DEFAULT_FORMAT)


def resolve_genre(candidates: Iterable[str] | None) -> str:
    """Pick the single canonical genre from the candidate values.

    Tie-breaking is by allow-list priority, not by input order, so
    ``["book", "journal"]`` resolves to ``journal``.

    Raises:
        MissingGenreError: no non-blank candidates were supplied.
        InvalidGenreError: none of the candidates is allow-listed.
    """
    values = list(candidates or [])
    present = {value.strip().lower() for value in values if value.strip()}
    if not present:
        raise MissingGenreError("no genre supplied")

    for genre in allowed_genres():
        if genre in present:
            return genre

    raise InvalidGenreError(values)
