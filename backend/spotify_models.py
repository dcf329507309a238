"""
Spotify Record Types

Typed views of the Spotify Web API track/album/artist payloads. Payloads are
decoded once, at the client boundary; anything missing a required field is
reported as a ProviderError rather than probed for later.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from errors import ProviderError


def _require(data: Dict[str, Any], key: str, kind, entity: str):
    """Return data[key] if present with the expected type, else raise ProviderError"""
    if not isinstance(data, dict):
        raise ProviderError(502, f"Malformed {entity} response from Spotify")
    value = data.get(key)
    if not isinstance(value, kind):
        raise ProviderError(502, f"Malformed {entity} response from Spotify (missing '{key}')")
    return value


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class ProviderImage:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProviderImage':
        return cls(
            url=_require(data, 'url', str, 'image'),
            width=_optional_int(data, 'width'),
            height=_optional_int(data, 'height'),
        )


def _images(data: Dict[str, Any]) -> List[ProviderImage]:
    images = data.get('images') or []
    if not isinstance(images, list):
        raise ProviderError(502, "Malformed images in Spotify response")
    return [ProviderImage.from_api(image) for image in images]


@dataclass
class ProviderArtist:
    """A Spotify artist; may or may not correspond to a composer"""
    id: str
    name: str
    uri: Optional[str] = None
    popularity: Optional[int] = None
    images: List[ProviderImage] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProviderArtist':
        return cls(
            id=_require(data, 'id', str, 'artist'),
            name=_require(data, 'name', str, 'artist'),
            uri=data.get('uri'),
            popularity=_optional_int(data, 'popularity'),
            images=_images(data),
        )


@dataclass
class ProviderAlbum:
    id: str
    name: str
    uri: Optional[str] = None
    release_date: Optional[str] = None
    popularity: Optional[int] = None
    images: List[ProviderImage] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProviderAlbum':
        release_date = data.get('release_date')
        return cls(
            id=_require(data, 'id', str, 'album'),
            name=_require(data, 'name', str, 'album'),
            uri=data.get('uri'),
            release_date=release_date if isinstance(release_date, str) else None,
            popularity=_optional_int(data, 'popularity'),
            images=_images(data),
        )

    def images_as_dicts(self) -> List[dict]:
        return [asdict(image) for image in self.images]


@dataclass
class ProviderTrack:
    id: str
    name: str
    uri: str
    duration_ms: Optional[int]
    track_number: Optional[int]
    popularity: Optional[int]
    album: ProviderAlbum
    artists: List[ProviderArtist]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProviderTrack':
        artists = _require(data, 'artists', list, 'track')
        return cls(
            id=_require(data, 'id', str, 'track'),
            name=_require(data, 'name', str, 'track'),
            uri=_require(data, 'uri', str, 'track'),
            duration_ms=_optional_int(data, 'duration_ms'),
            track_number=_optional_int(data, 'track_number'),
            popularity=_optional_int(data, 'popularity'),
            album=ProviderAlbum.from_api(_require(data, 'album', dict, 'track')),
            artists=[ProviderArtist.from_api(artist) for artist in artists],
        )

    @property
    def artist_ids(self) -> List[str]:
        return [artist.id for artist in self.artists]
