## Heat / decay scoring engine.
##
## A site's heat score is a 0-100 measure of its 7-day popularity. Tiers are
## not fixed cut-offs on the score: they come from the site's percentile rank
## inside the population of scored sites.

import math
from collections import namedtuple

from policy import HEAT_WEIGHTS, HEAT_MAXIMUMS, HEAT_THRESHOLDS, \
HEAT_TIER_FLOOR, HOT_DECAY_BASE, HOUR, TREND_SEPARATOR, TREND_DEFAULT, \
MAX_TREND_REASONS

HeatFactors = namedtuple('HeatFactors', [
    'recent_posts',
    'recent_media',
    'vote_velocity',
    'visitor_count',
    'comment_count',
])
HeatFactors.__new__.__defaults__ = (0, 0, 0, 0, 0)

SiteHeatScore = namedtuple('SiteHeatScore', [
    'site_id',
    'heat_score',
    'heat_tier',
    'last_calculated',
    'trend_reason',
])


def _non_negative(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def normalize_factor(name, value):
    return min(100.0, _non_negative(value) / HEAT_MAXIMUMS[name] * 100)


## Weighted sum of the normalized factors, rounded to an integer in [0, 100].
def calculate_heat_score(factors):
    score = 0.0
    for name, weight in HEAT_WEIGHTS.items():
        score += normalize_factor(name, getattr(factors, name)) * weight
    return max(0, min(100, _round_half_up(score)))


## Percentage of the population scoring strictly below score.
def rank_percentile(score, population):
    if not population:
        return 0.0
    below = sum(1 for s in population if s < score)
    return below * 100.0 / len(population)


def get_heat_tier(percentile_rank):
    for tier, threshold in HEAT_THRESHOLDS:
        if percentile_rank >= threshold:
            return tier
    return HEAT_TIER_FLOOR


## Short label for the "what's hot" panel. The order of the checks decides
## which two reasons show up.
def get_trend_reason(factors):
    reasons = []
    if factors.recent_media >= 10:
        reasons.append(f'{factors.recent_media:g} new photos')
    if factors.recent_posts >= 5:
        reasons.append(f'{factors.recent_posts:g} new posts')
    if factors.comment_count >= 20:
        reasons.append('Active discussion')
    if factors.vote_velocity >= 5:
        reasons.append('Trending votes')

    return TREND_SEPARATOR.join(reasons[:MAX_TREND_REASONS]) or TREND_DEFAULT


## Engagement decayed by HOT_DECAY_BASE per hour since the post.
##
## Half-life is about 13.5 hours.
def calculate_hot_score(engagement_score, created_at, now):
    hours = max(0.0, (now - created_at) / HOUR)
    return _non_negative(engagement_score) * HOT_DECAY_BASE ** hours


def hot_score(item, now):
    return calculate_hot_score(item.engagement_score, item.created_at, now)


## Scores every site, then tiers each one against the whole population.
def score_sites(factors_by_site, now):
    heat = {site: calculate_heat_score(f) for site, f in factors_by_site.items()}
    population = list(heat.values())

    scores = []
    for site in sorted(heat):
        percentile = rank_percentile(heat[site], population)
        scores.append(SiteHeatScore(
            site_id=site,
            heat_score=heat[site],
            heat_tier=get_heat_tier(percentile),
            last_calculated=now,
            trend_reason=get_trend_reason(factors_by_site[site]),
        ))
    return scores


def top_heat_sites(scores, limit=5):
    ranked = sorted(scores, key=lambda s: (-s.heat_score, s.site_id))
    return ranked[:limit]


def to_json(score):
    return score._asdict()


def from_json(data):
    return SiteHeatScore(**data)
