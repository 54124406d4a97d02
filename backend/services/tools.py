"""Built-in tools: weather station observations and the current UTC time."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import httpx

from config import CWA_API_KEY, CWA_API_URL
from services.tool_registry import Tool, ToolRegistry

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class WeatherTool:
    """Latest observation of a named weather station from the CWA open data API."""

    NAME = "get_weather"
    DESCRIPTION = "Get the latest observation of a weather station by its station name."
    PARAMETERS = {
        "type": "object",
        "properties": {
            "stationName": {
                "type": "string",
                "description": "Weather station name, for example '臺南' or '永康'."
            }
        },
        "required": ["stationName"]
    }

    def __init__(
        self,
        api_key: str = CWA_API_KEY,
        api_url: str = CWA_API_URL,
        timeout: float = 10.0
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    async def __call__(self, args: Dict[str, Any]) -> Dict[str, Any]:
        station_name = str(args.get("stationName", "")).strip()
        if not station_name:
            return {"error": "stationName is required."}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                self.api_url,
                params={"Authorization": self.api_key, "StationName": station_name}
            )
        response.raise_for_status()

        stations = (response.json().get("records") or {}).get("Station") or []
        if not stations:
            logger.info(f"No weather station matched {station_name!r}")
            return {
                "error": f"No live weather data found for station '{station_name}'.",
                "suggestion": "Check the station name or try a nearby station, for example '臺南' or '善化'."
            }

        station = stations[0]
        geo = station.get("GeoInfo") or {}
        element = station.get("WeatherElement") or {}
        humidity = _to_float(element.get("RelativeHumidity"))
        return {
            "result": {
                "stationName": station.get("StationName"),
                "countyName": geo.get("CountyName"),
                "townName": geo.get("TownName"),
                "observationTime": (station.get("ObsTime") or {}).get("DateTime"),
                "weather": element.get("Weather"),
                "temperature": _to_float(element.get("AirTemperature")),
                "humidity": humidity / 100 if humidity is not None else None,
                "windSpeed": _to_float(element.get("WindSpeed")),
                "precipitation": _to_float((element.get("Now") or {}).get("Precipitation")),
                "uvIndex": _to_int(element.get("UVIndex"))
            }
        }

    def as_tool(self) -> Tool:
        return Tool(
            name=self.NAME,
            description=self.DESCRIPTION,
            parameters=self.PARAMETERS,
            handler=self
        )


async def get_current_time(args: Dict[str, Any]) -> Dict[str, Any]:
    """Current UTC time; the model converts it to the user's local time."""
    now = datetime.now(timezone.utc)
    return {
        "result": {
            "utcTime": now.isoformat().replace("+00:00", "Z"),
            "note": "Convert this UTC time to the user's local time before replying."
        }
    }


def build_default_registry(weather_tool: Optional[WeatherTool] = None) -> ToolRegistry:
    """Registry with every built-in tool."""
    return ToolRegistry([
        (weather_tool or WeatherTool()).as_tool(),
        Tool(
            name="get_current_time",
            description="Get the current UTC (Coordinated Universal Time) time.",
            handler=get_current_time
        )
    ])
