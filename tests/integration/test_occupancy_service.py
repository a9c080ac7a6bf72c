"""
Integration tests for the occupancy query service

Tests the window limits on occupancy and heatmap queries.
"""

import pytest
from datetime import date

from app import config
from app.services.errors import ValidationError

pytestmark = pytest.mark.integration


class TestWindowLimits:
    """Wide windows are refused before any snapshot is built"""

    @pytest.mark.asyncio
    async def test_occupancy_window_up_to_limit(self, services, make_kennel, monkeypatch):
        monkeypatch.setattr(config, "MAX_OCCUPANCY_DAYS", 30)
        await make_kennel("K1")

        result = await services.occupancy.occupancy(date(2024, 6, 1), date(2024, 6, 30))
        assert len(result["kennels"][0]["days"]) == 30

        with pytest.raises(ValidationError, match="Occupancy range is limited to 30 days"):
            await services.occupancy.occupancy(date(2024, 6, 1), date(2024, 7, 1))

    @pytest.mark.asyncio
    async def test_default_occupancy_limit_covers_a_leap_year(self, services, make_kennel):
        await make_kennel("K1")
        result = await services.occupancy.occupancy(date(2024, 1, 1), date(2024, 12, 31))
        assert len(result["kennels"][0]["days"]) == 366

        with pytest.raises(ValidationError):
            await services.occupancy.occupancy(date(2000, 1, 1), date(2099, 12, 31))

    @pytest.mark.asyncio
    async def test_heatmap_limit(self, services, monkeypatch):
        monkeypatch.setattr(config, "MAX_HEATMAP_DAYS", 7)
        result = await services.occupancy.heatmap(date(2024, 6, 1), date(2024, 6, 7))
        assert result["rows"] == []

        with pytest.raises(ValidationError, match="Heatmap range"):
            await services.occupancy.heatmap(date(2024, 6, 1), date(2024, 6, 8))
