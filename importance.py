## Importance / activity blending engine.
##
## effective = clamp(importance + activity * exp(-elapsed / ACTIVITY_DECAY), 0, 200)
##
## importance is editorial and static (0-100), activity accumulates from
## contributions and fades with time since the last one.

import math
from collections import namedtuple

from policy import DEFAULT_IMPORTANCE, MIN_IMPORTANCE, MAX_IMPORTANCE, \
MAX_EFFECTIVE_SCORE, ACTIVITY_DECAY, STALE_ACTIVITY_AGE, \
TRENDING_MIN_ACTIVITY, TRENDING_WINDOW, IMPORTANCE_THRESHOLDS, \
IMPORTANCE_TIER_FLOOR, ZOOM_LEVELS, LOCAL_ZOOM

ImportanceActivityState = namedtuple('ImportanceActivityState', [
    'site_id',
    'importance_score',
    'activity_score',
    'activity_updated_at',
    'decayed_activity',
    'effective_score',
    'importance_tier',
    'is_trending',
])

# famous sites get maximum importance
LANDMARK_SITES = [
    'giza', 'pyramid', 'sphinx', 'karnak', 'luxor', 'abu-simbel', 'valley-of-the-kings',
    'stonehenge', 'avebury', 'skara-brae', 'newgrange', 'ring-of-brodgar',
    'machu-picchu', 'teotihuacan', 'chichen-itza', 'nazca', 'tiwanaku', 'sacsayhuaman',
    'carnac', 'gobekli-tepe', 'gobeklitepe', 'malta', 'mnajdra', 'hagar-qim',
    'angkor', 'borobudur', 'mohenjo-daro', 'sanchi',
    'easter-island', 'moai', 'nan-madol',
    'petra', 'baalbek', 'ollantaytambo', 'puma-punku',
]

MAJOR_SITES = [
    'callanish', 'knowth', 'dowth', 'silbury', 'west-kennet',
    'castlerigg', 'bryn-celli-ddu', 'carrowmore', 'poulnabrone',
    'dolmen', 'passage-tomb', 'tumulus', 'ziggurat',
    'antequera', 'almendres', 'externsteine', 'ales-stenar',
]

TRUST_TIER_BONUS = {'promoted': 15, 'gold': 10, 'silver': 5, 'bronze': 0}
# (min media count, bonus), checked top down
MEDIA_BONUS = [(50, 15), (20, 10), (5, 5), (1, 2)]


def _finite(value, default):
    if value is None:
        return default
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def decay_activity(activity_score, activity_updated_at, now):
    activity_score = max(0.0, _finite(activity_score, 0.0))
    if activity_updated_at is None:
        activity_updated_at = now - STALE_ACTIVITY_AGE

    elapsed = max(0, now - activity_updated_at)
    return activity_score * math.exp(-elapsed / ACTIVITY_DECAY)


def get_importance_tier(effective_score):
    for tier, threshold in IMPORTANCE_THRESHOLDS:
        if effective_score >= threshold:
            return tier
    # NaN fails every comparison and lands here too
    return IMPORTANCE_TIER_FLOOR


def is_trending(activity_score, activity_updated_at, now, window=TRENDING_WINDOW):
    if activity_updated_at is None:
        return False
    if _finite(activity_score, 0.0) <= TRENDING_MIN_ACTIVITY:
        return False
    return now - activity_updated_at < window


def blend_importance(site_id, importance_score, activity_score,
        activity_updated_at, now, trending_window=TRENDING_WINDOW):
    importance = _finite(importance_score, DEFAULT_IMPORTANCE)
    importance = max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, importance))
    activity = max(0.0, _finite(activity_score, 0.0))

    decayed = decay_activity(activity, activity_updated_at, now)
    effective = max(0.0, min(MAX_EFFECTIVE_SCORE, importance + decayed))

    return ImportanceActivityState(
        site_id=site_id,
        importance_score=importance,
        activity_score=activity,
        activity_updated_at=activity_updated_at,
        decayed_activity=decayed,
        effective_score=effective,
        importance_tier=get_importance_tier(effective),
        is_trending=is_trending(activity, activity_updated_at, now, trending_window),
    )


## Sites above min_score, most important first.
def rank_by_effective_score(states, min_score=0, limit=None):
    ranked = sorted(states, key=lambda s: (-s.effective_score, str(s.site_id)))
    ranked = [s for s in ranked if s.effective_score >= min_score]
    return ranked if limit is None else ranked[:limit]


## Returns (max sites, min effective score) for a map zoom level.
def zoom_policy(zoom):
    for max_zoom, max_sites, min_score in ZOOM_LEVELS:
        if zoom <= max_zoom:
            return max_sites, min_score
    return LOCAL_ZOOM


def _matches(site, patterns):
    slug = (site.get('slug') or '').lower()
    name = (site.get('name') or '').lower()
    return any(p in slug or p.replace('-', ' ') in name for p in patterns)


## Editorial baseline used by the importance backfill.
def calculate_importance_score(site):
    if _matches(site, LANDMARK_SITES):
        return 95
    if _matches(site, MAJOR_SITES):
        return 85

    score = DEFAULT_IMPORTANCE
    if site.get('layer') == 'official':
        score += 15

    status = site.get('verification_status')
    if status == 'verified':
        score += 10
    elif status != 'under_review':
        score -= 10

    score += TRUST_TIER_BONUS.get(site.get('trust_tier'), 0)

    media_count = site.get('media_count') or 0
    for minimum, bonus in MEDIA_BONUS:
        if media_count >= minimum:
            score += bonus
            break

    approve = site.get('votes_approve') or 0
    if approve > 0 and not site.get('votes_reject'):
        score += min(10, approve * 2)

    site_type = (site.get('site_type') or '').lower()
    if 'pyramid' in site_type:
        score += 10
    elif 'temple' in site_type or 'observatory' in site_type \
            or 'city' in site_type or 'settlement' in site_type:
        score += 5

    return max(10, min(100, score))


def to_json(state):
    data = state._asdict()
    data['effective_score'] = round(state.effective_score, 1)
    data['decayed_activity'] = round(state.decayed_activity, 1)
    return data
