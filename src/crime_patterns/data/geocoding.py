"""
Geocoding collaborators: turn a location key into a stable (lat, lng) point.

The detectors only rely on the `Geocoder` contract: the same key always maps
to the same point (or to None when the key cannot be resolved).
"""

import hashlib
import time
from typing import Dict, Mapping, Optional, Protocol, Tuple

import requests

from crime_patterns.config import AnalysisConfig
from crime_patterns.models import Coordinates
from crime_patterns.utils.exceptions import GeocodingError
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

CHICAGO_CENTER = (41.881832, -87.623177)


def _normalize_key(location: str) -> str:
    return location.lower().strip()


class Geocoder(Protocol):
    def locate(self, location: str) -> Optional[Coordinates]:
        ...


class StaticGeocoder:
    """Lookup-table geocoder, e.g. for precomputed address points."""

    def __init__(self, points: Mapping[str, Tuple[float, float]]) -> None:
        self.points = {_normalize_key(k): Coordinates(float(v[0]), float(v[1])) for k, v in points.items()}

    def locate(self, location: str) -> Optional[Coordinates]:
        return self.points.get(_normalize_key(location))


class HashGeocoder:
    """
    Offline geocoder that derives a deterministic point from a SHA-1 of the key.

    Points fall inside a square of `span_deg` degrees around `center`. Useful
    when no address service is reachable; positions carry no real geography.
    """

    def __init__(self, center: Tuple[float, float] = CHICAGO_CENTER, span_deg: float = 0.1) -> None:
        self.center = center
        self.span_deg = span_deg

    def locate(self, location: str) -> Optional[Coordinates]:
        key = _normalize_key(location)
        if not key:
            return None
        digest = hashlib.sha1(key.encode('utf8')).digest()
        lat_frac = int.from_bytes(digest[:4], 'big') / 0xFFFFFFFF
        lng_frac = int.from_bytes(digest[4:8], 'big') / 0xFFFFFFFF
        half = self.span_deg / 2
        return Coordinates(
            self.center[0] - half + lat_frac * self.span_deg,
            self.center[1] - half + lng_frac * self.span_deg,
        )


class NominatimGeocoder:
    """
    HTTP geocoder backed by a Nominatim-compatible search endpoint.

    Attributes:
        url (str): Search endpoint
        user_agent (str): Required by the public Nominatim usage policy
        rate_limit (float): Base wait between retried requests in seconds
        retries (int): Attempts per lookup
        timeout (float): Per-request timeout in seconds

    Results (including misses) are cached per normalized key for the life of the instance.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
        rate_limit: float = 1.0,
        retries: int = 3,
        timeout: float = 10.0,
        config: Optional[AnalysisConfig] = None,
    ) -> None:
        config = config or AnalysisConfig()
        self.url = url or config.nominatim_url
        self.user_agent = user_agent or config.geocoder_user_agent
        self.rate_limit = rate_limit
        self.retries = retries
        self.timeout = timeout
        self._cache: Dict[str, Optional[Coordinates]] = {}

    def _make_request(self, query: str) -> Optional[requests.Response]:
        """
        Make an HTTP request to the geocoder with retry logic.

        Returns:
            Optional[requests.Response]: Response object if successful, None otherwise

        Raises:
            GeocodingError: Network error on the last attempt
        """
        params = {'q': query, 'format': 'json', 'limit': 1}
        headers = {'User-Agent': self.user_agent}

        for attempt in range(self.retries):
            try:
                logger.debug(f'Geocoding request: {query}')
                response = requests.get(self.url, params=params, headers=headers, timeout=self.timeout)

                if response.status_code == 200:
                    return response

                elif response.status_code == 429:  # Rate limit
                    wait_time = min((attempt + 1) * self.rate_limit * 2, 60)
                    logger.warning(f'Geocoder rate limit exceeded, waiting for {wait_time}s')
                    time.sleep(wait_time)
                else:
                    logger.error(f'Geocoding failed with status {response.status_code}: {response.text}')
                    time.sleep(self.rate_limit * (attempt + 1))  # Progressive backoff

            except requests.exceptions.RequestException as e:
                logger.error(f'Geocoder network error (attempt {attempt + 1}): {str(e)}')
                if attempt == self.retries - 1:
                    raise GeocodingError(f'Geocoder network error after {self.retries} attempts: {str(e)}')
                time.sleep(self.rate_limit * (attempt + 1))

        return None

    def locate(self, location: str) -> Optional[Coordinates]:
        key = _normalize_key(location)
        if not key:
            return None
        if key in self._cache:
            return self._cache[key]

        response = self._make_request(location.strip())
        if response is None:
            raise GeocodingError(f'No response from geocoder for {location!r} after {self.retries} attempts')

        try:
            results = response.json()
        except ValueError as e:
            raise GeocodingError(f'Geocoder returned invalid JSON for {location!r}: {e}')

        point = None
        if results:
            try:
                point = Coordinates(float(results[0]['lat']), float(results[0]['lon']))
            except (KeyError, TypeError, ValueError) as e:
                raise GeocodingError(f'Unexpected geocoder payload for {location!r}: {e}')
        else:
            logger.info(f'Geocoder has no match for {location!r}')

        self._cache[key] = point
        return point
