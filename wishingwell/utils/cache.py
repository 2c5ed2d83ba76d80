import json
import logging
import os

import redis

REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")
_client = None

log = logging.getLogger(__name__)


def r():
    global _client
    if _client is None:
        _client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    return _client


def progress_key(well_id: str) -> str:
    return f"well:{well_id}:progress:v1"


def get_json(key: str):
    try:
        cached = r().get(key)
    except redis.RedisError as e:
        log.debug("[cache] get %s failed: %s", key, e)
        return None
    return json.loads(cached) if cached else None


def set_json(key: str, value, ttl: int) -> None:
    try:
        r().setex(key, ttl, json.dumps(value, default=str))
    except redis.RedisError as e:
        log.debug("[cache] set %s failed: %s", key, e)


def invalidate(key: str) -> None:
    try:
        r().delete(key)
    except redis.RedisError as e:
        log.debug("[cache] delete %s failed: %s", key, e)
