"""Weather Gateway package.

Aggregates weather and location providers behind one normalized schema.
"""

__version__ = "0.1.0"

from weather_gateway.config import Config
from weather_gateway.errors import FormatError, GatewayError, InvalidRequest, UnknownOperation, UpstreamError
from weather_gateway.gateway import GatewayResponse, Operation, WeatherGateway

__all__ = [
    "Config",
    "FormatError",
    "GatewayError",
    "GatewayResponse",
    "InvalidRequest",
    "Operation",
    "UnknownOperation",
    "UpstreamError",
    "WeatherGateway",
]
