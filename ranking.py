## Feed generation / ranking pipeline.
##
## generate_feed is pure: same items, sort, filters, preferences and `now`
## always give the same ordered list. `now` is milliseconds since the epoch.

from filters import NO_FILTERS, UserPreferences, matches_activity_types, \
matches_site, matches_tags, within_time_range, is_following, is_hidden
from heat import hot_score
from policy import SORT_OPTIONS, FOLLOWED_SITE_BOOST, FOLLOWED_USER_BOOST, \
FOLLOWED_TAG_BOOST, MAX_PER_AUTHOR, MAX_PER_SITE

NO_PREFERENCES = UserPreferences(user_id=None)


## Keeps one item per id. Engagement only grows, so the larger snapshot
## is the newer one.
def dedupe(items):
    seen = {}
    order = []
    for item in items:
        current = seen.get(item.id)
        if current is None:
            order.append(item.id)
            seen[item.id] = item
        elif item.engagement_score > current.engagement_score:
            seen[item.id] = item
    return [seen[id] for id in order]


def filter_items(items, filters, prefs, now):
    stages = [lambda item: matches_activity_types(item, filters.activity_types)]

    if filters.site_id is not None:
        stages.append(lambda item: matches_site(item, filters.site_id))
    if filters.tags:
        stages.append(lambda item: matches_tags(item, filters.tags))
    if filters.time_range != 'all':
        stages.append(lambda item: within_time_range(item, filters.time_range, now))
    if filters.following:
        stages.append(lambda item: is_following(item, prefs))
    if prefs.muted_users or prefs.hidden_content:
        stages.append(lambda item: not is_hidden(item, prefs))

    return [item for item in items if all(stage(item) for stage in stages)]


def personalization(item, prefs):
    boost = 1.0
    if item.site_id is not None and item.site_id in prefs.followed_sites:
        boost *= FOLLOWED_SITE_BOOST
    if item.actor_id is not None and item.actor_id in prefs.followed_users:
        boost *= FOLLOWED_USER_BOOST

    # 10% per followed tag
    boost *= 1 + len(item.tags & prefs.followed_tags) * FOLLOWED_TAG_BOOST
    return boost


def sort_items(items, sort_by, prefs, now):
    if sort_by == 'new':
        key = lambda item: (-item.created_at, item.id)
    elif sort_by == 'hot':
        key = lambda item: (-hot_score(item, now), -item.created_at, item.id)
    elif sort_by == 'top':
        key = lambda item: (-item.engagement_score, -item.created_at, item.id)
    elif sort_by == 'personalized':
        key = lambda item: (-hot_score(item, now) * personalization(item, prefs),
                -item.created_at, item.id)
    else:
        raise ValueError(f'unknown sort option {sort_by!r}, expected one of {SORT_OPTIONS}')

    return sorted(items, key=key)


def generate_feed(items, sort_by, filters, prefs, now):
    filters = filters or NO_FILTERS
    prefs = prefs or NO_PREFERENCES

    items = filter_items(dedupe(items), filters, prefs, now)
    return sort_items(items, sort_by, prefs, now)


## Caps how many items a single author or site can place in a feed,
## keeping the ranked order otherwise.
def apply_diversity(items, max_per_author=MAX_PER_AUTHOR, max_per_site=MAX_PER_SITE):
    result = []
    authors = {}
    sites = {}

    for item in items:
        author_count = authors.get(item.actor_id, 0)
        site_count = sites.get(item.site_id, 0) if item.site_id is not None else 0

        if author_count >= max_per_author:
            continue
        if item.site_id is not None and site_count >= max_per_site:
            continue

        result.append(item)
        authors[item.actor_id] = author_count + 1
        if item.site_id is not None:
            sites[item.site_id] = site_count + 1

    return result


def paginate(items, limit, offset=0):
    return items[offset:offset + limit]
