import ipaddress
import logging
import re
from collections.abc import Mapping
from typing import Any, List, Optional

import httpx

from weather_gateway.chain import LOCATION_TIMEOUT, Candidate, fetch_json, resolve_chain
from weather_gateway.errors import InvalidRequest
from weather_gateway.extract import as_number, coordinate_text, first_text, safe_get
from weather_gateway.models import ResolvedAddress, ResolvedLocation, SearchResult, SearchResults

logger = logging.getLogger("weather_gateway.location")

MEITUAN_LATLNG_URL = "https://apimobile.meituan.com/group/v1/city/latlng/{latitude},{longitude}"
MEITUAN_IP_URL = "https://apimobile.meituan.com/locate/v2/ip/loc"
AMAP_REGEO_URL = "https://restapi.amap.com/v3/geocode/regeo"
AMAP_PLACE_URL = "https://restapi.amap.com/v3/place/text"

# Meituan rejects requests that do not look like they come from its mobile site
MEITUAN_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; weather-gateway/0.1)",
    "Accept": "application/json",
    "Referer": "https://i.meituan.com/",
}

UNKNOWN_ADDRESS = "未知位置"
DEFAULT_CITY = "北京市"
DEFAULT_LOCATION = ResolvedLocation(latitude=39.9042, longitude=116.4074, address=DEFAULT_CITY)

MAX_SEARCH_RESULTS = 5

# Checked in order: CDN proxy, originating client, direct connection
CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip")

_IPV4_WITH_PORT = re.compile(r"^(\d{1,3}(?:\.\d{1,3}){3}):\d+$")
_IPV4_MAPPED = re.compile(r"^::ffff:(\d{1,3}(?:\.\d{1,3}){3})$", re.IGNORECASE)

# Addresses the IP-location provider can never place
_UNROUTABLE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("fc00::/7"),
]


def client_ip_from_headers(headers: Mapping) -> str:
    """Raw client address from proxy headers, first non-empty header wins"""
    lowered = {str(name).lower(): value for name, value in headers.items()}
    for name in CLIENT_IP_HEADERS:
        value = lowered.get(name)
        if not isinstance(value, str):
            continue
        if name == "x-forwarded-for":
            # client, proxy1, proxy2, ...
            value = value.split(",")[0]
        value = value.strip()
        if value:
            return value
    return ""


def clean_ip(raw: Optional[str]) -> Optional[str]:
    """Strip brackets and ports from a header address.

    ``[2001:db8::1]:443`` -> ``2001:db8::1``, ``203.0.113.5:8080`` ->
    ``203.0.113.5``, ``::ffff:203.0.113.5`` -> ``203.0.113.5``. Bare IPv6 and
    anything else pass through unchanged.
    """
    value = (raw or "").strip()
    if not value:
        return None

    if value.startswith("[") and "]" in value:
        value = value[1 : value.index("]")]
    else:
        match = _IPV4_WITH_PORT.match(value)
        if match:
            value = match.group(1)

    mapped = _IPV4_MAPPED.match(value)
    if mapped:
        value = mapped.group(1)

    return value or None


def is_locatable(ip: str) -> bool:
    """Whether a public IP-location service could place this address"""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    if address.is_loopback or address.is_link_local or address.is_unspecified or address.is_multicast:
        return False
    return not any(address in network for network in _UNROUTABLE_NETWORKS if network.version == address.version)


def parse_poi(poi: Any) -> Optional[SearchResult]:
    """One Amap POI as a search result; None if its name or ``"lng,lat"`` is unusable"""
    if not isinstance(poi, Mapping):
        return None
    name = poi.get("name")
    location = poi.get("location")
    if not isinstance(name, str) or not isinstance(location, str):
        return None

    parts = location.split(",")
    if len(parts) < 2:
        return None
    address = poi.get("address")
    try:
        return SearchResult(
            longitude=float(parts[0]),
            latitude=float(parts[1]),
            name=name,
            address=address if isinstance(address, str) else "",
        )
    except ValueError:
        logger.debug(f"Dropping POI {name!r} with unusable location {location!r}")
        return None


def _has_data_key(payload: Any) -> bool:
    # a present "data" key ends the chain, even when it is null
    return isinstance(payload, Mapping) and "data" in payload


def _has_data_block(payload: Any) -> bool:
    return isinstance(safe_get(payload, "data"), Mapping)


def _amap_ok(payload: Any) -> bool:
    return safe_get(payload, "status") == "1"


def _has_pois(payload: Any) -> bool:
    pois = safe_get(payload, "pois")
    return isinstance(pois, list) and len(pois) > 0


def _meituan_address(payload: Any) -> ResolvedAddress:
    data = safe_get(payload, "data")
    return ResolvedAddress(address=first_text(data, "detail", "openCityName", "city") or UNKNOWN_ADDRESS)


def _amap_address(payload: Any) -> Optional[ResolvedAddress]:
    address = safe_get(payload, "regeocode.formatted_address")
    if not isinstance(address, str) or not address:
        return None
    return ResolvedAddress(address=address)


def _amap_places(payload: Any) -> SearchResults:
    pois = safe_get(payload, "pois")[:MAX_SEARCH_RESULTS]
    results: List[SearchResult] = []
    for poi in pois:
        result = parse_poi(poi)
        if result is not None:
            results.append(result)
    return SearchResults(results=results)


def _meituan_ip_location(payload: Any) -> Optional[ResolvedLocation]:
    latitude = as_number(safe_get(payload, "data.lat"))
    longitude = as_number(safe_get(payload, "data.lng"))
    if latitude is None or longitude is None:
        return None
    address = first_text(safe_get(payload, "data.rgeo"), "city", "district", "province") or DEFAULT_CITY
    try:
        return ResolvedLocation(latitude=latitude, longitude=longitude, address=address)
    except ValueError:
        return None


class LocationResolver:
    """Fallback chains for reverse geocoding, place search and IP location.

    None of the chains fail the caller: when every provider is rejected they
    resolve to a fixed default. The only error raised is for an empty search
    query.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        amap_key: Optional[str] = None,
        timeout: float = LOCATION_TIMEOUT,
    ):
        self.client = client
        self._amap_key = amap_key
        self.timeout = timeout

    def _reverse_geocode_chain(self, latitude: float, longitude: float) -> List[Candidate[ResolvedAddress]]:
        candidates = [
            Candidate(
                name="meituan-latlng",
                fetch=lambda: fetch_json(
                    self.client,
                    MEITUAN_LATLNG_URL.format(
                        latitude=coordinate_text(latitude), longitude=coordinate_text(longitude)
                    ),
                    params={"tag": 0},
                    headers=MEITUAN_HEADERS,
                ),
                accepts=_has_data_key,
                extract=_meituan_address,
                timeout=self.timeout,
            )
        ]
        if self._amap_key:
            candidates.append(
                Candidate(
                    name="amap-regeo",
                    fetch=lambda: fetch_json(
                        self.client,
                        AMAP_REGEO_URL,
                        params={
                            "key": self._amap_key,
                            "location": f"{coordinate_text(longitude)},{coordinate_text(latitude)}",
                            "radius": 1000,
                            "extensions": "base",
                        },
                    ),
                    accepts=_amap_ok,
                    extract=_amap_address,
                    timeout=self.timeout,
                )
            )
        return candidates

    async def reverse_geocode(self, latitude: float, longitude: float) -> ResolvedAddress:
        """Human-readable address for a coordinate"""
        logger.info(f"Reverse geocoding {latitude},{longitude}")
        return await resolve_chain(
            self._reverse_geocode_chain(latitude, longitude),
            ResolvedAddress(address=UNKNOWN_ADDRESS),
        )

    async def search_places(self, query: str) -> SearchResults:
        """Search places by free text, at most five results"""
        query = (query or "").strip()
        if not query:
            raise InvalidRequest("missing q")

        if not self._amap_key:
            logger.info("AMAP_API_KEY not configured, place search disabled")
            return SearchResults()

        logger.info(f"Searching places for {query!r}")
        candidate = Candidate(
            name="amap-place",
            fetch=lambda: fetch_json(
                self.client,
                AMAP_PLACE_URL,
                params={
                    "key": self._amap_key,
                    "keywords": query,
                    "offset": MAX_SEARCH_RESULTS,
                    "page": 1,
                    "extensions": "base",
                },
            ),
            accepts=_has_pois,
            extract=_amap_places,
            timeout=self.timeout,
        )
        return await resolve_chain([candidate], SearchResults())

    async def locate_ip(self, ip: Optional[str]) -> ResolvedLocation:
        """City-level location for a client IP"""
        if not ip or not is_locatable(ip):
            logger.info(f"Client IP {ip!r} cannot be located, using default location")
            return DEFAULT_LOCATION

        logger.info(f"Locating client IP {ip}")
        candidate = Candidate(
            name="meituan-ip",
            fetch=lambda: fetch_json(
                self.client,
                MEITUAN_IP_URL,
                params={"rgeo": "true", "ip": ip},
                headers=MEITUAN_HEADERS,
            ),
            accepts=_has_data_block,
            extract=_meituan_ip_location,
            timeout=self.timeout,
        )
        return await resolve_chain([candidate], DEFAULT_LOCATION)

    async def locate_by_client_address(self, headers: Mapping) -> ResolvedLocation:
        """Locate the client from the proxy headers of its request"""
        return await self.locate_ip(clean_ip(client_ip_from_headers(headers)))
