"""
polybuckets configuration

Settings come from environment variables, or from a .env file in the
current working directory. Server settings use the PB_ prefix; the S3
connection honours the usual AWS_REGION, AWS_PROFILE and AWS_ENDPOINT.
"""

from datetime import timedelta
from pydantic import AliasChoices
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Annotated

import functools
import re


ENV_PREFIX = "pb_"

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(value):
    """Parse a Go-style duration such as ``90s``, ``60m`` or ``1h30m``.

    Returns None if value is not in that format.
    """
    value = value.strip()
    if not value:
        return None
    pos = 0
    total = timedelta()
    for m in _DURATION_PART_RE.finditer(value):
        if m.start() != pos:
            return None
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(value):
        return None
    return total


class Settings(BaseSettings):
    ip_address: Annotated[str, Field(description="Address to bind the server to")] = (
        "0.0.0.0"
    )
    port: Annotated[int, Field(description="Port to bind the server to")] = 1323
    site_name: Annotated[
        str, Field(description="Site name shown in page titles and headers")
    ] = "polybuckets"
    cache_duration: Annotated[
        timedelta,
        Field(description="How long an object listing is served from the cache"),
    ] = timedelta(minutes=60)
    sweep_interval: Annotated[
        timedelta,
        Field(description="Minimum time between sweeps of expired cache entries"),
    ] = timedelta(seconds=60)
    log_level: Annotated[str, Field(description="Log level")] = "INFO"

    aws_region: Annotated[
        str | None, Field(validation_alias=AliasChoices("aws_region"))
    ] = None
    aws_profile: Annotated[
        str | None, Field(validation_alias=AliasChoices("aws_profile"))
    ] = None
    aws_endpoint: Annotated[
        str | None,
        Field(
            validation_alias=AliasChoices("aws_endpoint"),
            description="S3 endpoint override, e.g. for MinIO or other emulators",
        ),
    ] = None

    @field_validator("cache_duration", "sweep_interval", mode="before")
    @classmethod
    def parse_go_duration(cls, value):
        if isinstance(value, str):
            if re.fullmatch(r"\s*\d+(\.\d+)?\s*", value):
                return timedelta(seconds=float(value))
            parsed = parse_duration(value)
            if parsed is not None:
                return parsed
        return value

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value):
        return value.upper()

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX, env_file=".env", extra="ignore"
    )


@functools.lru_cache()
def get_settings() -> Settings:
    return Settings()


def build_service(settings):
    """Wire the S3 gateway, listing cache and browsing service together."""
    from polybuckets.browser import BrowsingService
    from polybuckets.cache import ListingCache
    from polybuckets.s3client import S3Client

    cache = ListingCache(sweep_interval=settings.sweep_interval)
    return BrowsingService(
        S3Client.from_settings(settings), cache, ttl=settings.cache_duration
    )
