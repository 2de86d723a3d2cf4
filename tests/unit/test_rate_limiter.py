from core.cache import KeyValueCache
from services.rate_limiter import RateLimiter, login_attempts_key
from tests.conftest import FakeRedis


def make_limiter():
    redis_client = FakeRedis()
    return RateLimiter(KeyValueCache(redis_client)), redis_client


def test_record_failure_counts_and_refreshes_ttl():
    limiter, redis_client = make_limiter()
    key = login_attempts_key(1234567)

    limiter.record_failure(key, 900)
    limiter.record_failure(key, 600)

    assert redis_client.data[key] == "2"
    # the window restarts on every failure
    assert redis_client.ttls[key] == 600


def test_blocked_at_threshold():
    limiter, _ = make_limiter()
    key = login_attempts_key(1234567)

    for _ in range(2):
        limiter.record_failure(key, 900)
    assert limiter.is_blocked(key, 3) is False

    limiter.record_failure(key, 900)
    assert limiter.is_blocked(key, 3) is True


def test_reset_clears_counter():
    limiter, redis_client = make_limiter()
    key = login_attempts_key(1234567)
    limiter.record_failure(key, 900)

    limiter.reset(key)

    assert key not in redis_client.data


def test_recording_fails_open():
    limiter, redis_client = make_limiter()
    redis_client.down = True

    # must not raise
    limiter.record_failure(login_attempts_key(1234567), 900)
    limiter.reset(login_attempts_key(1234567))


def test_lockout_check_fails_closed():
    limiter, redis_client = make_limiter()
    redis_client.down = True

    assert limiter.is_blocked(login_attempts_key(1234567), 3) is True
