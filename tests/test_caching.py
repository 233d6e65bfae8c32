"""Tests for Redis caching of doctor availability."""

from unittest.mock import MagicMock

import pytest
from conftest import DOCTOR_ID
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.redis_client import CacheManager
from carebook.schemas.doctors import AvailabilitySegment
from carebook.services.doctor_service import DoctorService

CACHE_KEY = f"doctor:{DOCTOR_ID}:availability"


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    assert cache_manager.get_json("test_key") is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '[{"day_of_week": 1}]'
    assert cache_manager.get_json("test_key") == [{"day_of_week": 1}]


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.set_json("test_key", [1, 2]) is True
    mock_redis.set.assert_called_once_with("test_key", "[1, 2]")

    mock_redis.reset_mock()
    assert cache_manager.set_json("test_key", [1, 2], ttl=300) is True
    mock_redis.setex.assert_called_once_with("test_key", 300, "[1, 2]")


def test_cache_manager_swallows_redis_errors():
    mock_redis = MagicMock()
    mock_redis.get.side_effect = RedisConnectionError("down")
    mock_redis.setex.side_effect = RedisConnectionError("down")
    mock_redis.delete.side_effect = RedisConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("k") is None
    assert cache_manager.set_json("k", {}, ttl=10) is False
    assert cache_manager.delete("k") is False


@pytest.mark.asyncio
async def test_availability_is_cached(db_session: AsyncSession, test_doctor: dict) -> None:
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    service = DoctorService(db_session, CacheManager(mock_redis), cache_ttl=60)

    segments = await service.get_availability(DOCTOR_ID)

    assert segments[0]["start_time"] == "09:00"
    mock_redis.get.assert_called_once_with(CACHE_KEY)
    key, ttl, _ = mock_redis.setex.call_args.args
    assert (key, ttl) == (CACHE_KEY, 60)


@pytest.mark.asyncio
async def test_availability_served_from_cache(db_session: AsyncSession) -> None:
    mock_redis = MagicMock()
    mock_redis.get.return_value = '[{"day_of_week": 3, "start_time": "08:00"}]'
    service = DoctorService(db_session, CacheManager(mock_redis))

    # No doctor row exists; the cached value wins
    segments = await service.get_availability(DOCTOR_ID)

    assert segments == [{"day_of_week": 3, "start_time": "08:00"}]
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_set_availability_invalidates_cache(
    db_session: AsyncSession,
    test_doctor: dict,
) -> None:
    mock_redis = MagicMock()
    service = DoctorService(db_session, CacheManager(mock_redis))

    await service.set_availability(
        DOCTOR_ID,
        [AvailabilitySegment(day_of_week=2, start_time="13:00", end_time="15:00")],
    )

    mock_redis.delete.assert_called_once_with(CACHE_KEY)
