## Contains various policy relating to feed generation and scoring.

HOUR = 3600 * 1000
DAY = 24 * HOUR

## Heat score (7-day popularity of a site).

HEAT_WINDOW = 7 * DAY

# weights must sum to 1.0; renormalize if a factor is added or removed
HEAT_WEIGHTS = {
    'recent_posts': 0.25,
    'recent_media': 0.20,
    'vote_velocity': 0.25,
    'visitor_count': 0.15,
    'comment_count': 0.15,
}

# value at which a factor saturates at 100
HEAT_MAXIMUMS = {
    'recent_posts': 20,
    'recent_media': 50,
    'vote_velocity': 10,
    'visitor_count': 500,
    'comment_count': 30,
}

# percentile rank lower bounds, checked top down
HEAT_THRESHOLDS = [
    ('hot', 95),
    ('rising', 85),
    ('active', 70),
    ('normal', 30),
]
HEAT_TIER_FLOOR = 'low'

TREND_SEPARATOR = ' • '
TREND_DEFAULT = 'Recent activity'
MAX_TREND_REASONS = 2

## Hot sort. Engagement decays by 5% per hour of age.
HOT_DECAY_BASE = 0.95

## Importance / activity blending.

DEFAULT_IMPORTANCE = 50
MIN_IMPORTANCE, MAX_IMPORTANCE = 0, 100
MAX_EFFECTIVE_SCORE = 200
# e-folding time of the activity score
ACTIVITY_DECAY = 7 * DAY
# activity with no timestamp is assumed to be this old
STALE_ACTIVITY_AGE = 30 * DAY
TRENDING_MIN_ACTIVITY = 20
TRENDING_WINDOW = 7 * DAY

IMPORTANCE_THRESHOLDS = [
    ('landmark', 80),
    ('major', 60),
    ('notable', 40),
]
IMPORTANCE_TIER_FLOOR = 'minor'

# (max zoom, max sites, min effective score)
ZOOM_LEVELS = [
    (4, 50, 70),    # world, landmarks only
    (7, 75, 50),    # continent
    (10, 100, 30),  # country
    (13, 150, 10),  # region
]
LOCAL_ZOOM = (200, 0)
MAX_MAP_SITES = 200

## Feed pipeline.

SORT_OPTIONS = ('new', 'hot', 'top', 'personalized')
DEFAULT_SORT = 'new'

TIME_RANGES = {
    '1h': HOUR,
    '24h': DAY,
    '7d': 7 * DAY,
    '30d': 30 * DAY,
}

FOLLOWED_SITE_BOOST = 2.0
FOLLOWED_USER_BOOST = 1.8
FOLLOWED_TAG_BOOST = 0.1

MAX_PER_AUTHOR = 3
MAX_PER_SITE = 4

# bounded working set the feed is ranked over
FEED_WINDOW = 30 * DAY

PAGE_SIZE = 30
MAX_PAGE_SIZE = 100

## Caching of recomputed scores, in seconds. Refreshed every few minutes,
## not in real time.
HEAT_SCORE_EXPIRATION = 300
IMPORTANCE_EXPIRATION = 300
