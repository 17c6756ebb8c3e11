## Shared fixtures: stub collaborators for the store and Redis.

import sys
from pathlib import Path

import pytest

# Modules live at the repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activity import make_activity  # noqa: E402
from policy import HOUR  # noqa: E402

NOW = 1_700_000_000_000


def item(id, activity_type='post_created', actor_id='u1', hours_old=1,
        engagement_score=10, site_id=None, tags=(), now=NOW):
    return make_activity(id=id, activity_type=activity_type, actor_id=actor_id,
        created_at=now - int(hours_old * HOUR), engagement_score=engagement_score,
        site_id=site_id, tags=tags)


class StubPipeline:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    def set(self, key, value):
        self.commands.append(('set', key, value))

    def expire(self, key, seconds):
        self.commands.append(('expire', key, seconds))

    def execute(self):
        results = []
        for command, key, value in self.commands:
            if command == 'set':
                self.redis.values[key] = value
            else:
                self.redis.expirations[key] = value
            results.append(True)
        self.commands = []
        return results


## Dict backed stand-in covering the commands the service layer uses.
class StubRedis:
    def __init__(self):
        self.values = {}
        self.expirations = {}

    def get(self, key):
        value = self.values.get(key)
        return None if value is None else value.encode('utf-8')

    def pipeline(self):
        return StubPipeline(self)


## In-memory activity store with the same interface as db.ActivityStore.
class StubStore:
    def __init__(self, activity=(), posts=(), sites=(), factors=None,
            importance=(), follows=None, muted=None, tags=None, hidden=None):
        self.activity = list(activity)
        self.posts = list(posts)
        self.sites = list(sites)
        self.factors = factors or {}
        self.importance = list(importance)
        self.follows = follows or {}
        self.muted = muted or {}
        self.tags = tags or {}
        self.hidden = hidden or {}
        self.saved_heat = []
        self.calls = []

    def fetch_activity(self, since, site_id=None):
        self.calls.append(('fetch_activity', since, site_id))
        return [row for row in self.activity
                if site_id is None or row.get('site_id') == site_id]

    def fetch_posts_and_sites(self, since, site_id=None):
        self.calls.append(('fetch_posts_and_sites', since, site_id))
        return self.posts, self.sites

    def fetch_heat_factors(self, now):
        self.calls.append(('fetch_heat_factors', now))
        return self.factors

    def save_heat_scores(self, scores):
        self.saved_heat.append(list(scores))

    def fetch_importance(self):
        self.calls.append(('fetch_importance',))
        return self.importance

    def fetch_follows(self, user):
        return self.follows.get(user, ([], []))

    def fetch_muted(self, user):
        return self.muted.get(user, [])

    def fetch_followed_tags(self, user):
        return self.tags.get(user, [])

    def fetch_hidden(self, user):
        return self.hidden.get(user, [])


@pytest.fixture
def redis_stub():
    return StubRedis()
