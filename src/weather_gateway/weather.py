import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional

import httpx

from weather_gateway.chain import Candidate, fetch_json, resolve_chain
from weather_gateway.errors import FormatError
from weather_gateway.extract import (
    coordinate_text,
    hpa_from_pa,
    kmh_from_ms,
    percent_from_fraction,
    round_half_away,
    safe_get,
    safe_number,
    safe_round,
)
from weather_gateway.models import (
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    LifeIndex,
    LifeIndexEntry,
    WeatherData,
)
from weather_gateway.skycon import DEFAULT_SKYCON, skycon_info

logger = logging.getLogger("weather_gateway.weather")

CAIYUN_API_BASE = "https://api.caiyunapp.com/v2.6"
WEATHER_TIMEOUT = 10.0

MAX_HOURLY = 24
MAX_DAILY = 3

RELATIVE_DAYS = {
    "zh_CN": ("今天", "明天", "后天"),
    "en_US": ("today", "tomorrow", "day after tomorrow"),
}

# Monday first, matching date.weekday()
WEEKDAYS = {
    "zh_CN": ("周一", "周二", "周三", "周四", "周五", "周六", "周日"),
    "en_US": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
}

KEYPOINT_PLACEHOLDER = {"zh_CN": "天气提示", "en_US": "Weather tip"}

# model field -> provider key under daily.life_index
LIFE_INDEX_KEYS = {
    "ultraviolet": "ultraviolet",
    "car_washing": "carWashing",
    "dressing": "dressing",
    "comfort": "comfort",
    "cold_risk": "coldRisk",
}


def _labels(table: dict, lang: str):
    return table.get(lang, table["zh_CN"])


def relative_day_label(index: int, lang: str = "zh_CN") -> str:
    labels = _labels(RELATIVE_DAYS, lang)
    return labels[index] if 0 <= index < len(labels) else ""


def weekday_name(day: date, lang: str = "zh_CN") -> str:
    return _labels(WEEKDAYS, lang)[day.weekday()]


def timezone_offset_hours(longitude: float) -> int:
    """Approximate UTC offset from longitude, 15 degrees per hour.

    Ignores daylight saving and political timezone boundaries.
    """
    return round_half_away(longitude / 15)


def local_start_hour(longitude: float, now: Optional[datetime] = None) -> int:
    """Approximate local hour at ``longitude``, in [0, 24)"""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return (now.hour + timezone_offset_hours(longitude)) % 24


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _skycon_code(value: Any) -> str:
    return value if isinstance(value, str) else DEFAULT_SKYCON


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _life_index_entry(entries: Any, index: int) -> LifeIndexEntry:
    entries = _as_list(entries)
    if index >= len(entries) or not isinstance(entries[index], Mapping):
        return LifeIndexEntry()
    entry = entries[index]
    return LifeIndexEntry(index=_text(entry.get("index")), desc=_text(entry.get("desc")))


def _current(realtime: Mapping, lang: str) -> CurrentWeather:
    skycon = _skycon_code(realtime.get("skycon"))
    return CurrentWeather(
        temperature=safe_round(realtime.get("temperature"), 0),
        apparent_temperature=safe_round(realtime.get("apparent_temperature"), 0),
        humidity=percent_from_fraction(safe_get(realtime, "humidity")),
        wind_speed=kmh_from_ms(safe_get(realtime, "wind.speed")),
        wind_direction=safe_number(safe_get(realtime, "wind.direction"), 0),
        pressure=hpa_from_pa(safe_get(realtime, "pressure")),
        visibility=realtime.get("visibility"),
        skycon=skycon,
        weather_info=skycon_info(skycon, lang),
        air_quality=realtime.get("air_quality"),
    )


def _hourly(hourly: Any, start_hour: int, lang: str) -> List[HourlyForecast]:
    temperatures = _as_list(safe_get(hourly, "temperature"))
    skycons = _as_list(safe_get(hourly, "skycon"))
    count = min(len(temperatures), len(skycons), MAX_HOURLY)

    entries = []
    for i in range(count):
        skycon = _skycon_code(safe_get(skycons[i], "value"))
        entries.append(
            HourlyForecast(
                time=(start_hour + i) % 24,
                temperature=safe_round(safe_get(temperatures[i], "value"), 0),
                skycon=skycon,
                weather_info=skycon_info(skycon, lang),
            )
        )
    return entries


def _daily(daily: Any, today: date, lang: str) -> List[DailyForecast]:
    temperatures = _as_list(safe_get(daily, "temperature"))
    skycons = _as_list(safe_get(daily, "skycon"))
    life_index = safe_get(daily, "life_index")
    count = min(len(temperatures), MAX_DAILY)

    entries = []
    for i in range(count):
        day = today + timedelta(days=i)
        skycon = _skycon_code(safe_get(skycons[i], "value") if i < len(skycons) else None)
        entries.append(
            DailyForecast(
                date=day.strftime("%m-%d"),
                weekday=weekday_name(day, lang),
                relative_day=relative_day_label(i, lang),
                max_temp=safe_round(safe_get(temperatures[i], "max"), 0),
                min_temp=safe_round(safe_get(temperatures[i], "min"), 0),
                skycon=skycon,
                weather_info=skycon_info(skycon, lang),
                life_index=LifeIndex(
                    **{
                        field: _life_index_entry(safe_get(life_index, key), i)
                        for field, key in LIFE_INDEX_KEYS.items()
                    }
                ),
            )
        )
    return entries


def format_weather_data(
    raw: Any,
    longitude: float,
    *,
    now: Optional[datetime] = None,
    today: Optional[date] = None,
    lang: str = "zh_CN",
) -> WeatherData:
    """Normalize a Caiyun weather payload.

    Only a missing ``result`` or ``result.realtime`` block is fatal; every
    deeper field that is absent or malformed falls back to its default.

    Args:
        raw: Decoded provider JSON
        longitude: Requested longitude, used to approximate the local hour
        now: Current time (UTC) for hourly alignment, defaults to the clock
        today: First forecast date, defaults to the local date
        lang: Label language, ``zh_CN`` or ``en_US``
    """
    result = raw.get("result") if isinstance(raw, Mapping) else None
    if not isinstance(result, Mapping):
        raise FormatError("Failed to format weather data: missing result")
    realtime = result.get("realtime")
    if not isinstance(realtime, Mapping):
        raise FormatError("Failed to format weather data: missing realtime")

    if today is None:
        today = date.today()

    forecast_keypoint = result.get("forecast_keypoint")
    if forecast_keypoint is None:
        forecast_keypoint = _labels(KEYPOINT_PLACEHOLDER, lang)

    return WeatherData(
        current=_current(realtime, lang),
        hourly=_hourly(result.get("hourly"), local_start_hour(longitude, now), lang),
        daily=_daily(result.get("daily"), today, lang),
        forecast_keypoint=forecast_keypoint,
    )


_SIMULATED_TEXT = {
    "zh_CN": {
        "date": "今日",
        "weekday": "周几",
        "aqi": "优",
        "uv_index": "中",
        "uv_desc": "注意防晒",
        "keypoint": "注意携带雨具",
    },
    "en_US": {
        "date": "Today",
        "weekday": "Day",
        "aqi": "Excellent",
        "uv_index": "Moderate",
        "uv_desc": "Wear sunscreen",
        "keypoint": "Take an umbrella",
    },
}


def simulated_weather(lang: str = "zh_CN") -> WeatherData:
    """Fixed dataset served in degraded mode, same shape as live data"""
    text = _labels(_SIMULATED_TEXT, lang)
    skycon = "MODERATE_RAIN"
    info = skycon_info(skycon, lang)
    return WeatherData(
        current=CurrentWeather(
            temperature=26,
            apparent_temperature=30,
            humidity=87,
            wind_speed=28,
            wind_direction=0,
            pressure=1007,
            visibility=5.26,
            skycon=skycon,
            weather_info=info,
            air_quality={
                "aqi": {"chn": 14},
                "description": {"chn": text["aqi"]},
                "pm25": 9,
                "pm10": 14,
                "o3": 19,
            },
        ),
        hourly=[
            HourlyForecast(time=i, temperature=26, skycon=skycon, weather_info=info) for i in range(MAX_HOURLY)
        ],
        daily=[
            DailyForecast(
                date=text["date"],
                weekday=text["weekday"],
                relative_day=relative_day_label(0, lang),
                max_temp=29,
                min_temp=24,
                skycon=skycon,
                weather_info=info,
                life_index=LifeIndex(ultraviolet=LifeIndexEntry(index=text["uv_index"], desc=text["uv_desc"])),
            )
        ],
        forecast_keypoint=text["keypoint"],
    )


def _caiyun_ok(payload: Any) -> bool:
    if not isinstance(payload, Mapping):
        return False
    return payload.get("status") == "ok" or "result" in payload


class WeatherService:
    """Fetches and normalizes weather from the Caiyun API"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        lang: str = "zh_CN",
        timeout: float = WEATHER_TIMEOUT,
    ):
        self.client = client
        self._token = token
        self.lang = lang
        self.timeout = timeout

    def _url(self, longitude: float, latitude: float) -> str:
        point = f"{coordinate_text(longitude)},{coordinate_text(latitude)}"
        return f"{CAIYUN_API_BASE}/{self._token}/{point}/weather"

    async def fetch(self, longitude: float, latitude: float) -> Optional[Mapping]:
        """Raw weather payload, or None when the provider is unusable"""
        params = {"alert": "true", "dailysteps": 3, "hourlysteps": 24, "lang": self.lang}
        candidate = Candidate(
            name="caiyun",
            fetch=lambda: fetch_json(self.client, self._url(longitude, latitude), params=params),
            accepts=_caiyun_ok,
            extract=lambda payload: payload,
            timeout=self.timeout,
        )
        return await resolve_chain([candidate], None)

    async def get_weather(
        self,
        longitude: float,
        latitude: float,
        now: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> Optional[WeatherData]:
        """Normalized weather for a coordinate, or None when the provider is unusable"""
        raw = await self.fetch(longitude, latitude)
        if raw is None:
            return None
        try:
            return format_weather_data(raw, longitude, now=now, today=today, lang=self.lang)
        except FormatError as e:
            logger.error(f"Accepted weather payload could not be normalized: {e.message}")
            raise
