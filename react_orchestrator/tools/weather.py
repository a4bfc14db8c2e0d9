"""
Weather tool (mock)

Returns plausible current weather for a location without calling an
external service. Known cities get a realistic base temperature; the
rest of the report is randomized.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Literal

from .registry import ToolParameter, ToolRegistry

logger = logging.getLogger(__name__)

BASE_TEMPERATURES_C = {
    "beijing": 15,
    "shanghai": 20,
    "guangzhou": 25,
    "shenzhen": 26,
    "new york": 12,
    "london": 8,
    "paris": 10,
    "tokyo": 18,
    "sydney": 22,
    "moscow": -5,
    "dubai": 35,
    "singapore": 30,
}

# (condition, description, min_c, max_c)
CONDITIONS = [
    ("sunny", "Clear sky with bright sunshine", 15, 40),
    ("partly_cloudy", "Partly cloudy with some sun", 10, 35),
    ("cloudy", "Overcast with thick clouds", 5, 30),
    ("rainy", "Light to moderate rainfall", 5, 25),
    ("stormy", "Thunderstorms with heavy rain", 15, 30),
    ("snowy", "Snow falling", -10, 5),
    ("foggy", "Dense fog reducing visibility", 0, 20),
    ("windy", "Strong winds", 5, 25),
]


def _pick_condition(temp_c: float, rng: random.Random) -> tuple[str, str]:
    suitable = [(c, d) for c, d, lo, hi in CONDITIONS if lo <= temp_c <= hi]
    if not suitable:
        return "partly_cloudy", "Partly cloudy"
    return rng.choice(suitable)


def get_weather(params: dict, rng: random.Random | None = None) -> dict:
    """Generate a mock weather report for ``params['location']``."""
    rng = rng or random.Random()
    location = params["location"]
    unit = params.get("unit", "celsius")

    base = BASE_TEMPERATURES_C.get(location.strip().lower(), 20)
    temp_c = round(base + rng.uniform(-5, 5), 1)
    condition, description = _pick_condition(temp_c, rng)

    temperature = temp_c
    if unit == "fahrenheit":
        temperature = round(temp_c * 9 / 5 + 32, 1)

    return {
        "location": location,
        "unit": unit,
        "temperature": temperature,
        "condition": condition,
        "description": description,
        "humidity": f"{rng.randint(30, 70)}%",
        "wind_speed": f"{rng.randint(5, 25)} km/h",
        "pressure": f"{rng.randint(1000, 1050)} hPa",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": "Mock Weather Service",
    }


def format_result_for_llm(report: dict) -> str:
    symbol = "°F" if report["unit"] == "fahrenheit" else "°C"
    return (
        f"{report['location']}: {report['temperature']}{symbol}, "
        f"{report['description']}, humidity {report['humidity']}"
    )


def register(registry: ToolRegistry) -> None:
    registry.register(
        name="weather",
        description=(
            "Gets current weather information for a location. Returns temperature, "
            "conditions, humidity and wind speed."
        ),
        parameters=[
            ToolParameter(
                name="location",
                type="string",
                description='City name (e.g., "Beijing", "London")',
                required=True,
            ),
            ToolParameter(
                name="unit",
                type="string",
                description='Temperature unit: "celsius" or "fahrenheit"',
                schema=Literal["celsius", "fahrenheit"],
            ),
        ],
        handler=get_weather,
        formatter=format_result_for_llm,
    )
