from datetime import date, datetime, timedelta, timezone

import pytest

from weather_gateway.errors import FormatError
from weather_gateway.models import WeatherData
from weather_gateway.skycon import SKYCON_TABLE, skycon_info
from weather_gateway.weather import (
    format_weather_data,
    local_start_hour,
    relative_day_label,
    simulated_weather,
    timezone_offset_hours,
)

NOW = datetime(2026, 10, 18, 22, 30, tzinfo=timezone.utc)
TODAY = date(2026, 10, 18)  # a Sunday


def shape(value):
    """Key structure of a payload, ignoring values"""
    if isinstance(value, dict):
        return {key: shape(item) for key, item in value.items()}
    if isinstance(value, list):
        return [shape(value[0])] if value else []
    return None


@pytest.mark.parametrize("code", sorted(SKYCON_TABLE))
def test_skycon_info_known_codes(code):
    icon, desc_zh, desc_en = SKYCON_TABLE[code]
    assert skycon_info(code).icon == icon
    assert skycon_info(code).desc == desc_zh
    assert skycon_info(code, "en_US").desc == desc_en


def test_skycon_table_size():
    assert len(SKYCON_TABLE) == 22


@pytest.mark.parametrize("code", ["THUNDERSTORM", "", "clear_day"])
def test_skycon_info_unknown_code_is_echoed(code):
    info = skycon_info(code)
    assert info.icon == "?"
    assert info.desc == code


def test_timezone_offset_rounds_longitude():
    assert timezone_offset_hours(116.4) == 8
    assert timezone_offset_hours(112.5) == 8
    assert timezone_offset_hours(-122.4) == -8
    assert timezone_offset_hours(0) == 0


def test_local_start_hour_wraps():
    assert local_start_hour(116.4, NOW) == 6
    assert local_start_hour(-122.4, datetime(2026, 10, 18, 3, tzinfo=timezone.utc)) == 19
    assert local_start_hour(0, NOW) == 22


def test_local_start_hour_converts_aware_times_to_utc():
    beijing = timezone(timedelta(hours=8))
    assert local_start_hour(0, datetime(2026, 10, 19, 6, 30, tzinfo=beijing)) == 22


def test_relative_day_labels():
    assert [relative_day_label(i) for i in range(4)] == ["今天", "明天", "后天", ""]
    assert [relative_day_label(i, "en_US") for i in range(3)] == ["today", "tomorrow", "day after tomorrow"]


def test_current_conditions(caiyun_payload):
    data = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY)
    current = data.current
    assert current.temperature == 26
    assert current.apparent_temperature == 30
    assert current.humidity == 87
    assert current.wind_speed == 28
    assert current.wind_direction == 135
    assert current.pressure == 1007
    assert current.visibility == 5.26
    assert current.skycon == "MODERATE_RAIN"
    assert current.weather_info.desc == "中雨"
    assert current.air_quality["aqi"] == {"chn": 14}
    assert data.forecast_keypoint == "未来两小时不会下雨，放心出门吧"


def test_hourly_is_bounded_and_tagged_with_local_hours(caiyun_payload):
    data = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY)
    # 30 temperatures but only 24 skycons
    assert len(data.hourly) == 24
    assert [entry.time for entry in data.hourly] == [(6 + i) % 24 for i in range(24)]
    assert data.hourly[0].temperature == 20
    assert data.hourly[1].temperature == 21  # 20.5 rounds away from zero
    assert data.hourly[0].weather_info.desc == "阴"


def test_hourly_bounded_by_shorter_sequence(caiyun_payload):
    caiyun_payload["result"]["hourly"]["skycon"] = caiyun_payload["result"]["hourly"]["skycon"][:5]
    data = format_weather_data(caiyun_payload, 0, now=NOW, today=TODAY)
    assert [entry.time for entry in data.hourly] == [22, 23, 0, 1, 2]


def test_hourly_entry_defaults(caiyun_payload):
    caiyun_payload["result"]["hourly"] = {"temperature": [{}, {"value": "hot"}], "skycon": [{}, {"value": 3}]}
    data = format_weather_data(caiyun_payload, 0, now=NOW, today=TODAY)
    assert [(entry.temperature, entry.skycon) for entry in data.hourly] == [(0, "CLEAR_DAY"), (0, "CLEAR_DAY")]


def test_daily_entries(caiyun_payload):
    data = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY)
    assert len(data.daily) == 3
    assert [day.date for day in data.daily] == ["10-18", "10-19", "10-20"]
    assert [day.weekday for day in data.daily] == ["周日", "周一", "周二"]
    assert [day.relative_day for day in data.daily] == ["今天", "明天", "后天"]
    assert (data.daily[0].max_temp, data.daily[0].min_temp) == (30, 23)
    assert (data.daily[1].max_temp, data.daily[1].min_temp) == (30, 25)
    assert [day.skycon for day in data.daily] == ["LIGHT_RAIN", "CLEAR_DAY", "CLEAR_DAY"]


def test_daily_dates_cross_month_boundary(caiyun_payload):
    data = format_weather_data(caiyun_payload, 116.4, now=NOW, today=date(2026, 10, 30))
    assert [day.date for day in data.daily] == ["10-30", "10-31", "11-01"]


def test_life_index_entries_default_independently(caiyun_payload):
    data = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY)
    first, second, third = (day.life_index for day in data.daily)

    assert (first.ultraviolet.index, first.ultraviolet.desc) == ("3", "弱")
    assert (third.ultraviolet.index, third.ultraviolet.desc) == ("1", "最弱")
    assert first.car_washing.desc == "较不适宜"
    assert (second.car_washing.index, second.car_washing.desc) == ("", "")
    assert (first.dressing.index, first.dressing.desc) == ("", "")
    assert third.comfort.desc == "温暖"
    assert (first.cold_risk.index, first.cold_risk.desc) == ("", "")


def test_wire_names(caiyun_payload):
    payload = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY).to_payload()
    day = payload["daily"][0]
    assert day["relativeDay"] == "今天"
    assert set(day["life_index"]) == {"ultraviolet", "carWashing", "dressing", "comfort", "coldRisk"}
    assert payload["hourly"][0]["weather_info"] == {"icon": "☁️", "desc": "阴"}


def test_english_labels(caiyun_payload):
    data = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY, lang="en_US")
    assert [day.relative_day for day in data.daily] == ["today", "tomorrow", "day after tomorrow"]
    assert [day.weekday for day in data.daily] == ["Sun", "Mon", "Tue"]
    assert data.current.weather_info.desc == "Moderate rain"


def test_minimal_payload_degrades_to_defaults():
    data = format_weather_data({"result": {"realtime": {}}}, 116.4, now=NOW, today=TODAY)
    current = data.current
    assert (current.temperature, current.humidity, current.wind_speed, current.wind_direction) == (0, 0, 0, 0)
    assert current.pressure == 1013
    assert current.skycon == "CLEAR_DAY"
    assert current.visibility is None
    assert data.hourly == []
    assert data.daily == []
    assert data.forecast_keypoint == "天气提示"


@pytest.mark.parametrize(
    "raw",
    [
        {"status": "ok"},
        {"result": None},
        {"result": {"hourly": {}}},
        {"result": {"realtime": None}},
        [],
    ],
)
def test_missing_structure_is_a_format_error(raw):
    with pytest.raises(FormatError) as excinfo:
        format_weather_data(raw, 116.4, now=NOW, today=TODAY)
    assert excinfo.value.status_code == 500


def test_simulated_weather_matches_live_shape(caiyun_payload):
    live = format_weather_data(caiyun_payload, 116.4, now=NOW, today=TODAY).to_payload()
    simulated = simulated_weather().to_payload()

    WeatherData.model_validate(simulated)
    assert set(simulated) == set(live)
    assert set(simulated["current"]) == set(live["current"])
    assert shape(simulated["hourly"]) == shape(live["hourly"])
    assert shape(simulated["daily"]) == shape(live["daily"])


def test_simulated_weather_values():
    data = simulated_weather()
    assert (data.current.temperature, data.current.humidity, data.current.wind_speed) == (26, 87, 28)
    assert data.current.pressure == 1007
    assert [entry.time for entry in data.hourly] == list(range(24))
    assert len(data.daily) == 1
    assert data.daily[0].life_index.ultraviolet.desc == "注意防晒"
    assert data.forecast_keypoint == "注意携带雨具"
