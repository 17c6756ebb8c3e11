## Service layer. Decouples application logic from HTTP context.
##
## Fetches things through the activity store, caches recomputed scores in
## Redis and hands everything else to the pure scoring/ranking modules.
## The store, the cache and the current time are always passed in.

import json
import logging

import activity
import heat
import importance
from filters import make_preferences, merge_preferences
from ranking import generate_feed, apply_diversity, paginate
from policy import FEED_WINDOW, PAGE_SIZE, HEAT_SCORE_EXPIRATION, \
IMPORTANCE_EXPIRATION, TRENDING_WINDOW, MAX_MAP_SITES

HEAT_KEY = 'sites:heat'
IMPORTANCE_KEY = 'sites:importance'


def _split_ids(value):
    return [v.strip() for v in (value or '').split(',') if v.strip()]


def fallback_preferences(section):
    return make_preferences(None,
        followed_sites=_split_ids(section.get('fallback_sites')),
        followed_users=_split_ids(section.get('fallback_users')),
        followed_tags=_split_ids(section.get('fallback_tags')))


## Follow, mute and hide data for a user. Each kind of follow falls back
## to the sample follows only when the user has none of that kind.
def load_preferences(store, user, fallback=None):
    sites, users = store.fetch_follows(user)
    real = make_preferences(user, followed_sites=sites, followed_users=users,
        followed_tags=store.fetch_followed_tags(user),
        muted_users=store.fetch_muted(user),
        hidden_content=store.fetch_hidden(user))

    if fallback is None:
        return real
    return merge_preferences(real, fallback)


## Activity items in the working set. Falls back to posts and sites when
## the activity table is empty.
def fetch_items(store, now, site_id=None):
    since = now - FEED_WINDOW
    rows = store.fetch_activity(since, site_id)
    if rows:
        return activity.load_activities(rows)

    logging.info('no activity rows since %s, building feed from posts and sites', since)
    posts, sites = store.fetch_posts_and_sites(since, site_id)

    items = []
    for convert, rows in ((activity.post_to_activity, posts), (activity.site_to_activity, sites)):
        for row in rows:
            try:
                items.append(convert(row))
            except (TypeError, ValueError) as e:
                logging.warning('skipping row %s: %s', row.get('id'), e)
    return items


## Generates page of relevant activity for a given user.
def get_feed_page(store, user, sort_by, filters, now, page_size=PAGE_SIZE, offset=0,
        fallback=None, diversity=True):
    prefs = load_preferences(store, user, fallback)
    items = fetch_items(store, now, filters.site_id)

    ranked = generate_feed(items, sort_by, filters, prefs, now)
    if diversity:
        ranked = apply_diversity(ranked)
    page = paginate(ranked, page_size, offset)

    logging.debug('user %s: %d candidates, %d ranked, %d on page',
        user, len(items), len(ranked), len(page))

    return {
        'feed': [activity.to_json(item) for item in page],
        'meta': {
            'sort_by': sort_by,
            'limit': page_size,
            'offset': offset,
            'count': len(page),
            'has_more': offset + len(page) < len(ranked),
        },
    }


## Recomputes heat scores for every site, persists them
## and refreshes the cache.
def refresh_heat_scores(store, cache, now):
    factors = store.fetch_heat_factors(now)
    scores = heat.score_sites(factors, now)
    store.save_heat_scores(scores)

    p = cache.pipeline()
    p.set(HEAT_KEY, json.dumps([heat.to_json(s) for s in scores]))
    # reuse heat scores up to HEAT_SCORE_EXPIRATION
    p.expire(HEAT_KEY, HEAT_SCORE_EXPIRATION)
    p.execute()

    logging.info('recalculated heat scores for %d sites', len(scores))
    return scores


## Read-through: cached scores unless expired or a refresh is asked for.
def get_heat_scores(store, cache, now, refresh=False):
    if not refresh:
        cached = cache.get(HEAT_KEY)
        if cached is not None:
            return [heat.from_json(s) for s in json.loads(cached)]

    return refresh_heat_scores(store, cache, now)


def get_hot_sites(store, cache, now, limit=5):
    return heat.top_heat_sites(get_heat_scores(store, cache, now), limit)


def _fetch_importance_rows(store, cache):
    cached = cache.get(IMPORTANCE_KEY)
    if cached is not None:
        return json.loads(cached)

    rows = [list(row) for row in store.fetch_importance()]
    p = cache.pipeline()
    p.set(IMPORTANCE_KEY, json.dumps(rows))
    p.expire(IMPORTANCE_KEY, IMPORTANCE_EXPIRATION)
    p.execute()
    return rows


## Sites ranked by effective score for a map zoom level. Raw scores are
## cached, decay is always applied against `now`.
def get_map_sites(store, cache, now, zoom, min_score=None, limit=None,
        trending_window=TRENDING_WINDOW):
    max_sites, zoom_min_score = importance.zoom_policy(zoom)
    if min_score is None:
        min_score = zoom_min_score
    if limit is None:
        limit = max_sites
    limit = max(1, min(MAX_MAP_SITES, limit))

    states = [
        importance.blend_importance(site_id, importance_score, activity_score,
            activity_updated_at, now, trending_window)
        for site_id, importance_score, activity_score, activity_updated_at
        in _fetch_importance_rows(store, cache)
    ]
    shown = importance.rank_by_effective_score(states, min_score, limit)

    return {
        'sites': [importance.to_json(s) for s in shown],
        'meta': {
            'total': len(states),
            'showing': len(shown),
            'hidden_count': len(states) - len(shown),
            'zoom': zoom,
            'min_score': min_score,
            'limit': limit,
        },
    }
