import freezegun

from taskhub.reports.cache import SummaryCache, project_summary_key
from fakes import FakeRedis, FailingRedis


def test_summary_key():
    assert project_summary_key('p1') == 'project:p1:summary'


def test_get_set_and_expiry():
    cache = SummaryCache(FakeRedis(), ttl=60)

    with freezegun.freeze_time('2024-01-01 00:00:00') as frozen_time:
        assert cache.get('k') is None
        cache.set('k', {'total': 3})
        assert cache.get('k') == {'total': 3}

        frozen_time.tick(59)
        assert cache.get('k') == {'total': 3}

        frozen_time.tick(1)
        assert cache.get('k') is None


def test_undecodable_entry_is_a_miss():
    redis = FakeRedis()
    redis.set('k', '{broken')
    assert SummaryCache(redis).get('k') is None


def test_redis_failures_degrade():
    cache = SummaryCache(FailingRedis())
    assert cache.get('k') is None
    # set failures are swallowed
    cache.set('k', {'total': 1})
