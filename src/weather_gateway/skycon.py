"""Sky-condition (skycon) codes reported by the weather provider"""

from typing import Dict, Tuple

from weather_gateway.models import WeatherInfo

DEFAULT_SKYCON = "CLEAR_DAY"
UNKNOWN_ICON = "?"

# Rendered with innerHTML by the front end: the cloud is layered over the moon
_STACKED_NIGHT_CLOUD = (
    '<span class="icon-stacked"><span class="i-back">🌙</span><span class="i-front">☁️</span></span>'
)

# code -> (icon, zh_CN description, en_US description)
SKYCON_TABLE: Dict[str, Tuple[str, str, str]] = {
    "CLEAR_DAY": ("☀️", "晴", "Clear"),
    "CLEAR_NIGHT": ("🌙", "晴（夜间）", "Clear (night)"),
    "PARTLY_CLOUDY_DAY": ("⛅", "多云", "Partly cloudy"),
    "PARTLY_CLOUDY_NIGHT": (_STACKED_NIGHT_CLOUD, "多云（夜间）", "Partly cloudy (night)"),
    "CLOUDY": ("☁️", "阴", "Cloudy"),
    "LIGHT_RAIN": ("🌧️", "小雨", "Light rain"),
    "MODERATE_RAIN": ("🌧️", "中雨", "Moderate rain"),
    "HEAVY_RAIN": ("⛈️", "大雨", "Heavy rain"),
    "STORM_RAIN": ("⛈️", "暴雨", "Rainstorm"),
    "HAIL": ("🌨️", "冰雹", "Hail"),
    "SLEET": ("🌨️", "雨夹雪", "Sleet"),
    "LIGHT_SNOW": ("🌨️", "小雪", "Light snow"),
    "MODERATE_SNOW": ("🌨️", "中雪", "Moderate snow"),
    "HEAVY_SNOW": ("❄️", "大雪", "Heavy snow"),
    "STORM_SNOW": ("❄️", "暴雪", "Snowstorm"),
    "FOG": ("🌫️", "雾", "Fog"),
    "LIGHT_HAZE": ("🌫️", "轻度霾", "Light haze"),
    "MODERATE_HAZE": ("🌫️", "中度霾", "Moderate haze"),
    "HEAVY_HAZE": ("🌫️", "重度霾", "Heavy haze"),
    "DUST": ("🌪️", "浮尘", "Dust"),
    "SAND": ("🌪️", "沙尘", "Sand"),
    "WIND": ("🌬️", "大风", "Strong wind"),
}


def skycon_info(code: str, lang: str = "zh_CN") -> WeatherInfo:
    """Icon and description for a skycon code.

    Unrecognized codes are echoed back verbatim as the description with a
    placeholder icon, so new provider codes still render as something.
    """
    entry = SKYCON_TABLE.get(code)
    if entry is None:
        return WeatherInfo(icon=UNKNOWN_ICON, desc=code)
    icon, desc_zh, desc_en = entry
    return WeatherInfo(icon=icon, desc=desc_en if lang == "en_US" else desc_zh)
