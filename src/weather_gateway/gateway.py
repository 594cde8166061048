import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, AsyncContextManager, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from weather_gateway.config import Config
from weather_gateway.errors import GatewayError, InvalidRequest, UnknownOperation, UpstreamError
from weather_gateway.location import LocationResolver
from weather_gateway.models import Coordinates, ResolvedAddress, ResolvedLocation, SearchResults, WeatherData
from weather_gateway.weather import WeatherService, simulated_weather

logger = logging.getLogger("weather_gateway.gateway")


class Operation(str, Enum):
    WEATHER = "weather"
    REVERSE_GEOCODE = "geocode"
    SEARCH = "search"
    IP_LOCATE = "ip"


# Paths the front end calls
ROUTES = {
    "/api/weather": Operation.WEATHER,
    "/api/location/geocode": Operation.REVERSE_GEOCODE,
    "/api/location/search": Operation.SEARCH,
    "/api/location/ip": Operation.IP_LOCATE,
}


@dataclass(frozen=True)
class GatewayResponse:
    """Status code and JSON body for the transport layer to send"""

    status_code: int
    body: dict


def build_client(config: Config) -> httpx.AsyncClient:
    """Shared outbound client; connections are pooled across requests"""
    return httpx.AsyncClient(
        timeout=config.weather_timeout,
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )


def _coordinates(params: Mapping) -> Coordinates:
    try:
        return Coordinates(latitude=params.get("lat"), longitude=params.get("lng"))
    except ValidationError as e:
        raise InvalidRequest("lng and lat must be valid coordinates") from e


class WeatherGateway:
    """Entry point for the four front-end operations.

    Owns the provider clients built from one ``Config``. Pass ``client`` to
    share an existing ``httpx.AsyncClient`` (it is then not closed here).
    """

    def __init__(self, config: Config, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self.client = client if client is not None else build_client(config)

        self.locations = LocationResolver(
            self.client,
            amap_key=config.amap_api_key,
            timeout=config.location_timeout,
        )
        self.weather: Optional[WeatherService] = None
        if config.caiyun_api_token:
            self.weather = WeatherService(
                self.client,
                config.caiyun_api_token,
                lang=config.weather_lang,
                timeout=config.weather_timeout,
            )

    async def __aenter__(self) -> "WeatherGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def get_weather(
        self,
        longitude: float,
        latitude: float,
        now: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> WeatherData:
        """Normalized weather; simulated data when the provider is not configured"""
        if self.weather is None:
            logger.info("CAIYUN_API_TOKEN not configured, serving simulated weather")
            return simulated_weather(self.config.weather_lang)

        data = await self.weather.get_weather(longitude, latitude, now=now, today=today)
        if data is not None:
            return data

        if self.config.simulate_on_upstream_failure:
            logger.warning("Weather provider unavailable, serving simulated weather")
            return simulated_weather(self.config.weather_lang)
        raise UpstreamError("weather provider unavailable")

    async def reverse_geocode(self, latitude: float, longitude: float) -> ResolvedAddress:
        return await self.locations.reverse_geocode(latitude, longitude)

    async def search_places(self, query: str) -> SearchResults:
        return await self.locations.search_places(query)

    async def locate_by_client_address(self, headers: Mapping) -> ResolvedLocation:
        return await self.locations.locate_by_client_address(headers)

    def _operation(self, operation: Union[Operation, str]) -> Operation:
        if isinstance(operation, Operation):
            return operation
        if operation in ROUTES:
            return ROUTES[operation]
        try:
            return Operation(operation)
        except ValueError:
            raise UnknownOperation(f"unknown operation: {operation}") from None

    async def _run(self, operation: Operation, params: Mapping, headers: Mapping) -> Any:
        if operation is Operation.WEATHER:
            coords = _coordinates(params)
            return await self.get_weather(coords.longitude, coords.latitude)
        if operation is Operation.REVERSE_GEOCODE:
            coords = _coordinates(params)
            return await self.reverse_geocode(coords.latitude, coords.longitude)
        if operation is Operation.SEARCH:
            query = params.get("q")
            if not isinstance(query, str):
                raise InvalidRequest("missing q")
            return await self.search_places(query)
        return await self.locate_by_client_address(headers)

    async def dispatch(
        self,
        operation: Union[Operation, str],
        params: Optional[Mapping] = None,
        headers: Optional[Mapping] = None,
    ) -> GatewayResponse:
        """Run an operation for the transport layer.

        ``operation`` is an ``Operation`` or one of the ``ROUTES`` paths,
        ``params`` the request's query parameters (``lng``/``lat`` or ``q``)
        and ``headers`` its headers. Gateway errors become error bodies with
        their status code.
        """
        try:
            resolved = self._operation(operation)
            result = await self._run(resolved, params or {}, headers or {})
        except GatewayError as e:
            if e.status_code >= 500:
                logger.error(f"{operation} failed: {e.message}")
            else:
                logger.info(f"{operation} rejected: {e.message}")
            return GatewayResponse(status_code=e.status_code, body=e.to_payload())
        return GatewayResponse(status_code=200, body=result.to_payload())


def gateway_lifespan(config: Config) -> Callable[[Any], AsyncContextManager[WeatherGateway]]:
    """FastMCP lifespan: a gateway per server run, closed with its client on shutdown"""

    @asynccontextmanager
    async def lifespan(server: Any) -> AsyncIterator[WeatherGateway]:
        async with WeatherGateway(config) as gateway:
            logger.info("Weather gateway started")
            yield gateway
        logger.info("Weather gateway closed")

    return lifespan
