"""Tests for the weather fetcher and the dashboard weather summary."""

import httpx
import pytest

from downtime_tracker.services.samples import WeatherAttributes
from downtime_tracker.services.weather import WeatherService, current_weather, sky_condition


def make_service(handler) -> WeatherService:
    return WeatherService(latitude=-23.55, longitude=-46.63, transport=httpx.MockTransport(handler))


class TestFetchWeather:
    @pytest.mark.asyncio
    async def test_parses_current_conditions(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "current": {
                    "temperature_2m": 24.3,
                    "relative_humidity_2m": 71,
                    "precipitation": 0.2,
                    "wind_speed_10m": 11.5,
                    "cloud_cover": 45,
                },
            })

        weather = await make_service(handler).fetch_weather()

        assert weather == WeatherAttributes(
            temperature_celsius=24.3,
            humidity_percentage=71,
            precipitation_mm=0.2,
            wind_speed_kmh=11.5,
            cloud_cover_percentage=45,
        )
        assert seen[0].url.params["latitude"] == "-23.55"
        assert "cloud_cover" in seen[0].url.params["current"]

    @pytest.mark.asyncio
    async def test_missing_fields_are_absent(self):
        weather = await make_service(
            lambda request: httpx.Response(200, json={"current": {"temperature_2m": 18}})
        ).fetch_weather()

        assert weather.temperature_celsius == 18.0
        assert weather.cloud_cover_percentage is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500),
        httpx.Response(200, content=b"<html>maintenance</html>"),
        httpx.Response(200, json={"error": True}),
        httpx.Response(200, json=["unexpected"]),
    ])
    async def test_bad_responses_yield_empty_weather(self, response):
        weather = await make_service(lambda request: response).fetch_weather()

        assert weather.is_empty

    @pytest.mark.asyncio
    async def test_transport_failure_yields_empty_weather(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        assert (await make_service(handler).fetch_weather()).is_empty

    @pytest.mark.asyncio
    async def test_disabled_without_coordinates(self):
        service = WeatherService(latitude=None, longitude=None)

        assert service.enabled is False
        assert (await service.fetch_weather()).is_empty

    def test_enabled_with_coordinates(self):
        assert WeatherService(latitude=-23.5, longitude=-46.6).enabled is True

    @pytest.mark.asyncio
    async def test_fractional_percentages_round_half_up(self):
        weather = await make_service(
            lambda request: httpx.Response(200, json={"current": {"relative_humidity_2m": 64.5, "cloud_cover": 12.5}})
        ).fetch_weather()

        assert weather.humidity_percentage == 65
        assert weather.cloud_cover_percentage == 13


class TestWeatherSummary:
    @pytest.mark.parametrize("clouds,condition", [
        (None, "clear"),
        (0, "clear"),
        (10, "clear"),
        (11, "mostly clear"),
        (30, "mostly clear"),
        (31, "partly cloudy"),
        (60, "partly cloudy"),
        (61, "mostly cloudy"),
        (80, "mostly cloudy"),
        (81, "overcast"),
        (100, "overcast"),
    ])
    def test_sky_condition_bands(self, clouds, condition):
        assert sky_condition(clouds) == condition

    def test_uses_newest_sample_only(self, make_sample):
        newest = make_sample(30, weather=WeatherAttributes(temperature_celsius=20.6, cloud_cover_percentage=55))
        older = make_sample(0, weather=WeatherAttributes(temperature_celsius=12.0, cloud_cover_percentage=0))

        assert current_weather([newest, older]) == "21°C, partly cloudy"

    def test_absent_without_samples(self):
        assert current_weather([]) is None

    def test_absent_without_temperature(self, make_sample):
        sample = make_sample(0, weather=WeatherAttributes(cloud_cover_percentage=90))

        assert current_weather([sample]) is None

    @pytest.mark.parametrize("temperature,expected", [
        (20.5, "21°C, clear"),
        (21.5, "22°C, clear"),
        (20.4, "20°C, clear"),
        (-0.5, "-1°C, clear"),
    ])
    def test_temperature_halves_round_up(self, make_sample, temperature, expected):
        sample = make_sample(0, weather=WeatherAttributes(temperature_celsius=temperature, cloud_cover_percentage=5))

        assert current_weather([sample]) == expected
