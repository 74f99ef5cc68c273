import uuid
from contextlib import contextmanager

import redis

from dreamknot.domain.errors import ConflictError
from dreamknot.utils.retry import poll_until_true, redis_retry
from dreamknot.utils.settings import CART_LOCK_TTL_SECONDS, REDIS_URL
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete, redis runs the script atomically so nobody can
# slip in between GET and DEL and lose someone else's lock
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Per-cart mutex so two requests from the same user cannot race on the
    read-modify-write of a cart line.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None, wait_seconds: float = 2.0):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.wait_seconds = wait_seconds

    @staticmethod
    def _key(user_id: int) -> str:
        return f"cart:user:{user_id}:lock"

    @redis_retry()
    def acquire_cart_lock(self, user_id: int, token: str, ttl: int = CART_LOCK_TTL_SECONDS) -> bool:
        key = self._key(user_id)
        logger.debug(f"Acquire lock {key}")
        # SET cart:user:1:lock <token> NX EX <ttl>
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_cart_lock(self, user_id: int, token: str) -> bool:
        key = self._key(user_id)
        logger.debug(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def cart_lock(self, user_id: int):
        token = uuid.uuid4().hex
        acquire = poll_until_true(self.wait_seconds)(self.acquire_cart_lock)
        if not acquire(user_id, token):
            raise ConflictError("Cart is being updated by another request, please retry")
        try:
            yield
        finally:
            self.release_cart_lock(user_id, token)
