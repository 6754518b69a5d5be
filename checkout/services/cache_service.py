# checkout/services/cache_service.py
import json
from typing import Any, Iterable

import redis
from redis.exceptions import RedisError

from checkout.utils.retry import redis_retry
from checkout.utils.settings import REDIS_URL, REDIS_SOCKET_TIMEOUT
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class CacheKeys:
    @staticmethod
    def product_price(product_id: int) -> str:
        return f"product_price:{product_id}"

    @staticmethod
    def variant_price(variant_id: int) -> str:
        return f"variant_price:{variant_id}"

    @staticmethod
    def notify_failures(user_id: int) -> str:
        return f"notify:failures:{user_id}"

    @staticmethod
    def notify_backoff(user_id: int) -> str:
        return f"notify:backoff:{user_id}"


class CacheService:
    """
    Wspoldzielony cache (redis), tylko doradczy.
    -kazde wywolanie mozna pominac: przy awarii get zwraca None, set False, increment 0
    -wartosci trzymane jako JSON
    -brak stanu w procesie, liczniki tez siedza w redisie
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        if client is not None:
            self.redis = client
        else:
            self.redis = redis.Redis.from_url(
                url or REDIS_URL,
                decode_responses=True,
                socket_timeout=REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
            )

    def is_available(self) -> bool:
        try:
            return bool(self.redis.ping())
        except RedisError as e:
            logger.warning(f"Cache unavailable, degrading to store reads: {e}")
            return False

    def get(self, key: str) -> Any | None:
        try:
            raw = self._get(key)
        except RedisError as e:
            logger.warning(f"Cache get {key} failed: {e}")
            return None
        return self._decode(key, raw)

    def get_many(self, keys: Iterable[str]) -> dict[str, Any]:
        """Zwraca tylko trafienia; brakujace klucze po prostu nie wystepuja."""
        keys = list(keys)
        if not keys:
            return {}
        try:
            raws = self._mget(keys)
        except RedisError as e:
            logger.warning(f"Cache mget of {len(keys)} keys failed: {e}")
            return {}

        hits = {}
        for key, raw in zip(keys, raws):
            value = self._decode(key, raw)
            if value is not None:
                hits[key] = value
        return hits

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            self._setex(key, ttl_seconds, json.dumps(value, default=str))
            return True
        except RedisError as e:
            logger.warning(f"Cache set {key} failed: {e}")
            return False

    def increment(self, key: str, ttl_seconds: int) -> int:
        try:
            return self._incr_with_ttl(key, ttl_seconds)
        except RedisError as e:
            logger.warning(f"Cache increment {key} failed: {e}")
            return 0

    @redis_retry()
    def _get(self, key: str):
        return self.redis.get(key)

    @redis_retry()
    def _mget(self, keys: list[str]):
        return self.redis.mget(keys)

    @redis_retry()
    def _setex(self, key: str, ttl_seconds: int, payload: str):
        self.redis.setex(key, ttl_seconds, payload)

    @redis_retry()
    def _incr_with_ttl(self, key: str, ttl_seconds: int) -> int:
        #INCR + EXPIRE w jednym round tripie
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, ttl_seconds)
        count, _ = pipe.execute()
        return int(count)

    @staticmethod
    def _decode(key: str, raw):
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Cache entry {key} is not valid JSON, ignoring")
            return None
