import logging
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP

from weather_gateway.config import Config
from weather_gateway.errors import GatewayError
from weather_gateway.gateway import WeatherGateway, gateway_lifespan

load_dotenv()

config = Config()

# Set up logging
log_dir = Path(config.log_dir)
log_dir.mkdir(exist_ok=True)
log_file = log_dir / "weather_gateway.log"

logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(log_file),
        logging.StreamHandler(),
    ],
)

logger = logging.getLogger("weather_gateway")

mcp = FastMCP(
    "Weather Gateway",
    instructions="Normalized weather, reverse geocoding, place search and IP location",
    dependencies=["httpx", "pydantic", "pydantic-settings", "python-dotenv"],
    log_level=config.log_level.upper(),
    host=config.host,
    port=config.port,
    lifespan=gateway_lifespan(config),
)


def _gateway(ctx: Context) -> WeatherGateway:
    return ctx.request_context.lifespan_context


# Tools
@mcp.tool()
async def get_weather(longitude: float, latitude: float, ctx: Context) -> Dict[str, Any]:
    """
    Current conditions, 24-hour and 3-day forecast for a coordinate

    Args:
        longitude: Longitude in degrees
        latitude: Latitude in degrees
    """
    logger.info(f"Weather request for {longitude},{latitude}")
    try:
        data = await _gateway(ctx).get_weather(longitude, latitude)
    except GatewayError as e:
        logger.error(f"Error getting weather: {e.message}")
        return e.to_payload()
    return data.to_payload()


@mcp.tool()
async def reverse_geocode(latitude: float, longitude: float, ctx: Context) -> Dict[str, Any]:
    """
    Human-readable address for a coordinate

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    result = await _gateway(ctx).reverse_geocode(latitude, longitude)
    return result.to_payload()


@mcp.tool()
async def search_places(query: str, ctx: Context) -> Dict[str, Any]:
    """
    Search places by name, returning up to five matches with coordinates

    Args:
        query: Free-text place name or address
    """
    try:
        results = await _gateway(ctx).search_places(query)
    except GatewayError as e:
        logger.info(f"Search rejected: {e.message}")
        return e.to_payload()
    return results.to_payload()


@mcp.tool()
async def locate_by_client_address(ctx: Context, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    City-level location of a client from its request headers

    Args:
        headers: Request headers, e.g. cf-connecting-ip, x-forwarded-for, x-real-ip
    """
    location = await _gateway(ctx).locate_by_client_address(headers or {})
    return location.to_payload()


if __name__ == "__main__":
    mcp.run(transport=config.transport)
