"""Route classification for inbound ESI paths."""

from collections.abc import Callable
from dataclasses import dataclass

VERSION_TOKENS = frozenset({*(f"v{n}" for n in range(1, 10)), "latest", "dev", "legacy"})
LEGACY_VERSION_TOKENS = frozenset({"v1", "legacy"})


@dataclass(frozen=True)
class Generic:
    """Forward the route untouched."""

    kind = "generic"
    requires_token = False


@dataclass(frozen=True)
class CharacterSearch:
    """Version-prefixed /search route, served by the character search endpoint."""

    kind = "search"
    requires_token = True


@dataclass(frozen=True)
class CharacterOnline:
    """Version-prefixed /characters/{id}/online route."""

    version: str
    character_id: int
    legacy_shape: bool

    kind = "online"
    requires_token = False


RouteClassification = Generic | CharacterSearch | CharacterOnline

Matcher = Callable[[list[str]], RouteClassification | None]


def split_route(path: str) -> list[str]:
    """Split a route into segments, treating a missing leading '/' as present."""
    normalized = path if path.startswith("/") else f"/{path}"
    return normalized.split("/")[1:]


def _is_version(segment: str) -> bool:
    return segment.lower() in VERSION_TOKENS


def _match_search(segments: list[str]) -> CharacterSearch | None:
    if len(segments) < 2 or not _is_version(segments[0]):
        return None
    if segments[1].lower() != "search":
        return None
    return CharacterSearch()


def _match_character_online(segments: list[str]) -> CharacterOnline | None:
    if len(segments) < 4 or not _is_version(segments[0]):
        return None
    _, characters, character_id, online = segments[:4]
    if characters.lower() != "characters" or online.lower() != "online":
        return None
    if not (character_id.isascii() and character_id.isdigit()):
        return None
    version = segments[0].lower()
    return CharacterOnline(
        version=version,
        character_id=int(character_id),
        legacy_shape=version in LEGACY_VERSION_TOKENS,
    )


class RouteClassifier:
    """Classify an inbound path into one of the known route kinds.

    Matchers run in priority order; the first one returning a classification
    wins and anything left over is Generic.
    """

    def __init__(self, matchers: list[Matcher] | None = None):
        self.matchers = matchers or [_match_search, _match_character_online]

    def classify(self, path: str) -> RouteClassification:
        segments = split_route(path)
        for matcher in self.matchers:
            classification = matcher(segments)
            if classification is not None:
                return classification
        return Generic()
