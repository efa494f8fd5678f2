"""Tests for startup validation functions."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.main import check_redis_connectivity, validate_startup_configuration


@pytest.mark.asyncio
async def test_check_redis_connectivity_disabled() -> None:
    """Test Redis check when Redis is not configured."""
    mock_redis = Mock()
    mock_redis.is_available = False
    mock_redis.ping = AsyncMock()

    with patch("src.main.redis_client", mock_redis):
        await check_redis_connectivity()

    mock_redis.ping.assert_not_called()


@pytest.mark.asyncio
async def test_check_redis_connectivity_success() -> None:
    """Test successful Redis connectivity check."""
    mock_redis = Mock()
    mock_redis.is_available = True
    mock_redis.ping = AsyncMock(return_value=True)

    with patch("src.main.redis_client", mock_redis):
        await check_redis_connectivity()
        mock_redis.ping.assert_called_once()


@pytest.mark.asyncio
async def test_check_redis_connectivity_unreachable_does_not_fail() -> None:
    mock_redis = Mock()
    mock_redis.is_available = True
    mock_redis.ping = AsyncMock(return_value=False)

    with patch("src.main.redis_client", mock_redis):
        await check_redis_connectivity()


@pytest.mark.asyncio
async def test_validate_startup_configuration_production_without_token() -> None:
    """Production without a Logfire token exits with status 1."""

    def mock_require_credential(field: str, name: str) -> str:
        raise ValueError(f"{name} credential not configured")

    with (
        patch("src.main.settings") as mock_settings,
        pytest.raises(SystemExit) as exc_info,
    ):
        mock_settings.is_production = True
        mock_settings.require_credential.side_effect = mock_require_credential
        await validate_startup_configuration()

    assert exc_info.value.code == 1


@pytest.mark.asyncio
async def test_validate_startup_configuration_development_skips_credentials() -> None:
    with (
        patch("src.main.settings") as mock_settings,
        patch("src.main.check_redis_connectivity", new=AsyncMock()) as mock_check,
    ):
        mock_settings.is_production = False
        await validate_startup_configuration()

    mock_settings.require_credential.assert_not_called()
    mock_check.assert_awaited_once()
