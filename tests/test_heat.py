import math

import pytest

from heat import HeatFactors, calculate_heat_score, rank_percentile, \
get_heat_tier, get_trend_reason, calculate_hot_score, score_sites, \
top_heat_sites
from policy import HEAT_WEIGHTS, HOUR
from conftest import NOW

FIELDS = HeatFactors._fields


def test_weights_sum_to_one():
    assert set(HEAT_WEIGHTS) == set(FIELDS)
    assert math.fsum(HEAT_WEIGHTS.values()) == 1.0


def test_heat_score_bounds():
    assert calculate_heat_score(HeatFactors()) == 0
    assert calculate_heat_score(HeatFactors(20, 50, 10, 500, 30)) == 100
    # saturates instead of overflowing
    assert calculate_heat_score(HeatFactors(2000, 5000, 1000, 50000, 3000)) == 100


def test_heat_score_weighted_sum():
    # posts 10/20 -> 50 * 0.25, visitors 250/500 -> 50 * 0.15
    assert calculate_heat_score(HeatFactors(recent_posts=10, visitor_count=250)) == 20


def test_heat_score_rounds_half_up():
    # 25 + 7.5 = 32.5
    assert calculate_heat_score(HeatFactors(recent_posts=20, visitor_count=250)) == 33


def test_heat_score_ignores_negative_and_nan_factors():
    assert calculate_heat_score(HeatFactors(recent_posts=-10, recent_media=float('nan'))) == 0


@pytest.mark.parametrize('field', FIELDS)
def test_heat_score_is_monotonic_in_each_factor(field):
    base = HeatFactors(3, 7, 2, 120, 4)
    previous = calculate_heat_score(base)
    for value in range(0, 700, 7):
        score = calculate_heat_score(base._replace(**{field: getattr(base, field) + value}))
        assert score >= previous
        previous = score


def test_heat_tier_boundaries():
    assert get_heat_tier(95) == 'hot'
    assert get_heat_tier(94) != 'hot'
    assert get_heat_tier(94.9) == 'rising'
    assert get_heat_tier(85) == 'rising'
    assert get_heat_tier(70) == 'active'
    assert get_heat_tier(30) == 'normal'
    assert get_heat_tier(29.9) == 'low'
    assert get_heat_tier(0) == 'low'


def test_rank_percentile_counts_strictly_lower_scores():
    population = list(range(20))
    assert rank_percentile(19, population) == 95.0
    assert rank_percentile(0, population) == 0.0
    assert rank_percentile(5, []) == 0.0
    # everyone tied is nobody's top
    assert rank_percentile(0, [0, 0, 0]) == 0.0


def test_trend_reason_order_and_limit():
    factors = HeatFactors(recent_posts=6, recent_media=12, vote_velocity=8, comment_count=25)
    assert get_trend_reason(factors) == '12 new photos • 6 new posts'

    factors = HeatFactors(comment_count=25, vote_velocity=8)
    assert get_trend_reason(factors) == 'Active discussion • Trending votes'

    assert get_trend_reason(HeatFactors(vote_velocity=5)) == 'Trending votes'
    assert get_trend_reason(HeatFactors(recent_media=9)) == 'Recent activity'


def test_hot_score_decays_by_five_percent_an_hour():
    assert calculate_hot_score(100, NOW, NOW) == 100
    assert calculate_hot_score(100, NOW - HOUR, NOW) == pytest.approx(95)
    assert calculate_hot_score(100, NOW - 24 * HOUR, NOW) == pytest.approx(100 * 0.95 ** 24)


def test_hot_score_half_life():
    half_life = math.log(2) / math.log(1 / 0.95)
    assert calculate_hot_score(100, NOW - int(half_life * HOUR), NOW) == pytest.approx(50, rel=1e-6)


def test_hot_score_prefers_recent_and_engaged():
    recent = calculate_hot_score(100, NOW - HOUR, NOW)
    older = calculate_hot_score(100, NOW - 24 * HOUR, NOW)
    assert recent > older

    assert calculate_hot_score(101, NOW - HOUR, NOW) > recent


def test_hot_score_clamps_bad_input():
    assert calculate_hot_score(-50, NOW - HOUR, NOW) == 0
    # future posts are treated as brand new
    assert calculate_hot_score(100, NOW + HOUR, NOW) == 100


def test_score_sites_tiers_against_population():
    factors = {f's{i}': HeatFactors(recent_posts=i) for i in range(20)}

    scores = {s.site_id: s for s in score_sites(factors, NOW)}

    assert scores['s19'].heat_tier == 'hot'
    assert scores['s0'].heat_tier == 'low'
    assert scores['s19'].last_calculated == NOW
    assert scores['s19'].trend_reason == '19 new posts'


def test_top_heat_sites_breaks_ties_by_site_id():
    factors = {'b': HeatFactors(recent_posts=10), 'a': HeatFactors(recent_posts=10),
        'c': HeatFactors(recent_posts=1)}

    top = top_heat_sites(score_sites(factors, NOW), limit=2)

    assert [s.site_id for s in top] == ['a', 'b']
