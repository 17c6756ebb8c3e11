## Filter & preference model.
##
## FeedFilters is a closed structure built at the HTTP boundary. Values the
## pipeline does not know about are kept as-is and simply never match.

from collections import namedtuple

from policy import TIME_RANGES

FeedFilters = namedtuple('FeedFilters', [
    'activity_types',
    'site_id',
    'tags',
    'time_range',
    'following',
])
FeedFilters.__new__.__defaults__ = (frozenset(), None, frozenset(), 'all', False)

UserPreferences = namedtuple('UserPreferences', [
    'user_id',
    'followed_sites',
    'followed_users',
    'followed_tags',
    'muted_users',
    'hidden_content',
])
UserPreferences.__new__.__defaults__ = (frozenset(),) * 5

NO_FILTERS = FeedFilters()


def _split(value):
    if not value:
        return frozenset()
    return frozenset(v.strip().lower() for v in value.split(',') if v.strip())


## Builds FeedFilters from request query args (a werkzeug MultiDict).
## Unknown args are ignored.
def parse_filters(args):
    time_range = (args.get('range') or 'all').lower()
    if time_range not in TIME_RANGES:
        time_range = 'all'

    # ?type=a,b and ?type=a&type=b are both accepted
    types = frozenset()
    for value in args.getlist('type'):
        types |= _split(value)

    return FeedFilters(
        activity_types=types,
        site_id=args.get('site') or None,
        tags=_split(args.get('tag')),
        time_range=time_range,
        following=(args.get('following') or '').lower() == 'true',
    )


def make_preferences(user_id, followed_sites=(), followed_users=(),
        followed_tags=(), muted_users=(), hidden_content=()):
    return UserPreferences(
        user_id=user_id,
        followed_sites=frozenset(str(s) for s in followed_sites),
        followed_users=frozenset(str(u) for u in followed_users),
        followed_tags=frozenset(t.lower() for t in followed_tags),
        muted_users=frozenset(str(u) for u in muted_users),
        hidden_content=frozenset(str(c) for c in hidden_content),
    )


## Real follow data replaces the fallback whenever it is non-empty.
## The two are never unioned, so sample ids cannot leak into a real feed.
def merge_preferences(real, fallback):
    return real._replace(
        followed_sites=real.followed_sites or fallback.followed_sites,
        followed_users=real.followed_users or fallback.followed_users,
        followed_tags=real.followed_tags or fallback.followed_tags,
    )


## Predicates. Missing optional fields never match.

def matches_activity_types(item, activity_types):
    return not activity_types or item.activity_type in activity_types


def matches_site(item, site_id):
    return site_id is None or (item.site_id is not None and item.site_id == site_id)


def matches_tags(item, tags):
    if not tags:
        return True
    item_tags = {t.lower() for t in item.tags or ()}
    return any(t.lower() in item_tags for t in tags)


def within_time_range(item, time_range, now):
    max_age = TIME_RANGES.get(time_range)
    return max_age is None or now - item.created_at <= max_age


def is_following(item, prefs):
    if item.actor_id is not None and item.actor_id in prefs.followed_users:
        return True
    return item.site_id is not None and item.site_id in prefs.followed_sites


def is_hidden(item, prefs):
    return item.actor_id in prefs.muted_users or item.id in prefs.hidden_content


def to_json(filters):
    return {
        'activity_types': sorted(filters.activity_types),
        'site_id': filters.site_id,
        'tags': sorted(filters.tags),
        'time_range': filters.time_range,
        'following': filters.following,
    }
