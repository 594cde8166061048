from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Payload(BaseModel):
    """Base for records handed to the front end; wire names come from aliases"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class Coordinates(BaseModel):
    """Geographic coordinates"""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class WeatherInfo(Payload):
    """Displayable sky condition"""

    icon: str
    desc: str


class CurrentWeather(Payload):
    """Current conditions in display units"""

    temperature: int
    apparent_temperature: int
    humidity: int
    wind_speed: int
    wind_direction: int
    pressure: int
    visibility: Optional[Any] = None
    skycon: str
    weather_info: WeatherInfo
    air_quality: Optional[Any] = None


class HourlyForecast(Payload):
    time: int = Field(..., ge=0, le=23)
    temperature: int
    skycon: str
    weather_info: WeatherInfo


class LifeIndexEntry(Payload):
    index: str = ""
    desc: str = ""


class LifeIndex(Payload):
    ultraviolet: LifeIndexEntry = Field(default_factory=LifeIndexEntry)
    car_washing: LifeIndexEntry = Field(default_factory=LifeIndexEntry, alias="carWashing")
    dressing: LifeIndexEntry = Field(default_factory=LifeIndexEntry)
    comfort: LifeIndexEntry = Field(default_factory=LifeIndexEntry)
    cold_risk: LifeIndexEntry = Field(default_factory=LifeIndexEntry, alias="coldRisk")


class DailyForecast(Payload):
    date: str
    weekday: str
    relative_day: str = Field(..., alias="relativeDay")
    max_temp: int
    min_temp: int
    skycon: str
    weather_info: WeatherInfo
    life_index: LifeIndex = Field(default_factory=LifeIndex)


class WeatherData(Payload):
    """Normalized weather, identical in shape for every provider and for simulated data"""

    current: CurrentWeather
    hourly: List[HourlyForecast] = Field(default_factory=list, max_length=24)
    daily: List[DailyForecast] = Field(default_factory=list, max_length=3)
    forecast_keypoint: Any = None


class ResolvedAddress(Payload):
    address: str


class ResolvedLocation(Payload):
    """Located coordinates with a human-readable label"""

    latitude: float = Field(..., ge=-90, le=90, alias="lat")
    longitude: float = Field(..., ge=-180, le=180, alias="lng")
    address: str


class SearchResult(Payload):
    latitude: float = Field(..., ge=-90, le=90, alias="lat")
    longitude: float = Field(..., ge=-180, le=180, alias="lng")
    name: str
    address: str = ""


class SearchResults(Payload):
    results: List[SearchResult] = Field(default_factory=list, max_length=5)


class ErrorResponse(Payload):
    error: str
