import httpx
import pytest

from tests.helpers import FakeUpstream
from weather_gateway.config import Config
from weather_gateway.gateway import WeatherGateway


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_config():
    def _make(**overrides) -> Config:
        settings = {"caiyun_api_token": None, "amap_api_key": None}
        settings.update(overrides)
        return Config(_env_file=None, **settings)

    return _make


@pytest.fixture
def make_gateway(upstream, make_config):
    def _make(**overrides) -> WeatherGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handle))
        return WeatherGateway(make_config(**overrides), client=client)

    return _make


@pytest.fixture
def caiyun_payload():
    """A trimmed but realistic Caiyun v2.6 weather response"""
    return {
        "status": "ok",
        "api_version": "v2.6",
        "result": {
            "realtime": {
                "status": "ok",
                "temperature": 26.4,
                "apparent_temperature": 29.5,
                "humidity": 0.87,
                "wind": {"speed": 7.78, "direction": 135.9},
                "pressure": 100700,
                "visibility": 5.26,
                "skycon": "MODERATE_RAIN",
                "air_quality": {"aqi": {"chn": 14}, "description": {"chn": "优"}, "pm25": 9},
            },
            "hourly": {
                "status": "ok",
                "temperature": [{"datetime": f"h{i}", "value": 20 + i * 0.5} for i in range(30)],
                "skycon": [{"datetime": f"h{i}", "value": "CLOUDY"} for i in range(24)],
            },
            "daily": {
                "status": "ok",
                "temperature": [
                    {"date": "d0", "max": 29.5, "min": 23.4},
                    {"date": "d1", "max": 30.2, "min": 24.5},
                    {"date": "d2", "max": 27.0, "min": 21.6},
                    {"date": "d3", "max": 25.0, "min": 20.0},
                ],
                "skycon": [{"date": "d0", "value": "LIGHT_RAIN"}, {"date": "d1", "value": "CLEAR_DAY"}],
                "life_index": {
                    "ultraviolet": [
                        {"date": "d0", "index": "3", "desc": "弱"},
                        {"date": "d1", "index": "5", "desc": "很强"},
                        {"date": "d2", "index": 1, "desc": "最弱"},
                    ],
                    "carWashing": [{"date": "d0", "index": "3", "desc": "较不适宜"}],
                    "dressing": [],
                    "comfort": [{"date": "d0", "index": "4", "desc": "温暖"}] * 3,
                },
            },
            "forecast_keypoint": "未来两小时不会下雨，放心出门吧",
        },
    }
