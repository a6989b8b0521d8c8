import time, threading, logging
import redis
from flask import current_app
from ..errors import RateLimitedError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
EXT_KEY = 'rate_limit_store'

class _MemStore:
    def __init__(self):
        self._data = {}
        self._exp = {}
        self._lock = threading.Lock()

    def _cleanup(self):
        now = time.time()
        expired = [k for k, ts in self._exp.items() if ts <= now]
        for k in expired:
            self._data.pop(k, None)
            self._exp.pop(k, None)

    def incr(self, key):
        with self._lock:
            self._cleanup()
            v = int(self._data.get(key, '0')) + 1
            self._data[key] = str(v)
            return v

    def expire(self, key, ttl):
        with self._lock:
            self._cleanup()
            self._exp[key] = time.time() + ttl

def r():
    ext = current_app.extensions
    if ext.get(EXT_KEY) is not None:
        return ext[EXT_KEY]
    with _lock:
        if ext.get(EXT_KEY) is not None:
            return ext[EXT_KEY]
        url = current_app.config.get('REDIS_URL')
        if current_app.config.get('USE_REDIS') and url:
            try:
                client = redis.from_url(url, decode_responses=True)
                # Test connection once; fallback to memory on failure
                client.ping()
                ext[EXT_KEY] = client
                return client
            except redis.RedisError as e:
                logger.warning('redis unavailable (%s); rate limiting in process memory', e)
        ext[EXT_KEY] = _MemStore()
        return ext[EXT_KEY]

def check_rate_ip(ip: str, route_key: str, limit=20, window=60):
    k = f"rl:{route_key}:{ip}:{int(time.time()//window)}"
    v = r().incr(k)
    r().expire(k, window)
    if v > limit:
        logger.warning('rate limit hit route=%s ip=%s count=%s', route_key, ip, v)
        raise RateLimitedError()
