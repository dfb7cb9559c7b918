from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel

from ...core.exceptions import ConfigurationError


class OpenWeatherConfig(BaseModel):
    """Configuration for OpenWeather client"""
    API_URL: str = "https://api.openweathermap.org/data/2.5/weather"
    UNITS: str = "metric"
    TIMEOUT: int = 10


class OpenWeatherClient:
    """Client for the OpenWeather current weather API"""

    def __init__(self, api_key: str, config: Optional[OpenWeatherConfig] = None):
        if not api_key:
            raise ConfigurationError("OPEN_WEATHER_API_KEY is not set")
        self.api_key = api_key
        self.config = config or OpenWeatherConfig()

    def query_params(self, latitude: float, longitude: float) -> Dict[str, Any]:
        return {
            "lat": latitude,
            "lon": longitude,
            "units": self.config.UNITS,
            "appid": self.api_key,
        }

    def get_weather(self, latitude: float, longitude: float) -> Dict[str, Any]:
        response = requests.get(
            self.config.API_URL,
            params=self.query_params(latitude, longitude),
            timeout=self.config.TIMEOUT,
        )
        response.raise_for_status()
        return response.json()

    def get_station_coordinates(self, latitude: float, longitude: float) -> Dict[str, float]:
        """Coordinates of the weather station closest to the given point"""
        return self.get_weather(latitude, longitude)["coord"]
