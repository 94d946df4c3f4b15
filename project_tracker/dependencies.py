"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from project_tracker.cache import Cache, InMemoryCache, RedisCache
from project_tracker.config import get_settings
from project_tracker.db import DbClient, InMemoryDbClient, JsonFileDbClient, SqlDbClient
from project_tracker.projects import ProjectService
from project_tracker.storage import (
    InMemoryStorageClient,
    LocalDiskStorageClient,
    S3StorageClient,
    StorageClient,
)
from project_tracker.weather import WeatherClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_cache: Cache | None = None
_weather_client: WeatherClient | None = None
_project_service: ProjectService | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so project state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    elif settings.database_url:
        _db_client = SqlDbClient(settings.database_url)
    else:
        _db_client = JsonFileDbClient(settings.data_file)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _storage_client = InMemoryStorageClient(base_url=settings.media_base_url)
    elif settings.s3_bucket:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    else:
        _storage_client = LocalDiskStorageClient(
            root=settings.media_dir, base_url=settings.media_base_url
        )
    return _storage_client


def get_cache() -> Cache:
    """
    Return a singleton cache for upstream lookups.
    """
    global _cache
    if _cache:
        return _cache

    settings = get_settings()
    if settings.redis_url:
        _cache = RedisCache(url=settings.redis_url, key_prefix=settings.redis_key_prefix)
    else:
        _cache = InMemoryCache()
    return _cache


def get_weather_client() -> WeatherClient:
    global _weather_client
    if _weather_client:
        return _weather_client
    settings = get_settings()
    _weather_client = WeatherClient(
        get_cache(),
        cache_ttl=settings.weather_cache_ttl,
        timeout=settings.weather_timeout,
    )
    return _weather_client


def get_project_service() -> ProjectService:
    global _project_service
    if _project_service:
        return _project_service
    settings = get_settings()
    _project_service = ProjectService(
        get_db_client(),
        get_storage_client(),
        photo_target_bytes=settings.photo_target_bytes,
        max_upload_bytes=settings.max_upload_bytes,
        max_page_size=settings.max_page_size,
    )
    return _project_service
