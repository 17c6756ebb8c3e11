## Event model.
##
## Activity items are created once by collaborators (post, vote, upload
## services) and are read-only here. Timestamps are milliseconds since the
## epoch, like everywhere else in the feed.

import logging
import math
from collections import namedtuple
from datetime import datetime, timezone

ACTIVITY_TYPES = frozenset([
    'site_added',
    'site_verified',
    'site_updated',
    'media_added',
    'post_created',
    'comment_added',
    'user_joined',
    'badge_earned',
    'connection_proposed',
    'new_media',
    'expert_post',
    'site_update',
    'research_update',
    'event_announcement',
    'connection_found',
])

ActivityItem = namedtuple('ActivityItem', [
    'id',
    'activity_type',
    'actor_id',
    'target_type',
    'target_id',
    'site_id',
    'tags',
    'engagement_score',
    'created_at',
    'title',
    'description',
])

_DESCRIPTIONS = {
    'site_added': 'added a new site',
    'site_verified': 'verified a site',
    'site_updated': 'updated site information',
    'site_update': 'updated site information',
    'media_added': 'added new media',
    'new_media': 'added new media',
    'post_created': 'started a discussion',
    'comment_added': 'replied to a discussion',
    'user_joined': 'joined the network',
    'badge_earned': 'earned a badge',
    'connection_proposed': 'discovered a connection',
    'connection_found': 'discovered a connection',
    'expert_post': 'shared insights',
    'research_update': 'updated their research',
    'event_announcement': 'announced an event',
}


def to_millis(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        return to_millis(datetime.fromisoformat(value.replace('Z', '+00:00')))

    value = float(value)
    if not math.isfinite(value):
        return None
    return int(value)


def normalize_tags(tags):
    if tags is None:
        return frozenset()
    if isinstance(tags, str):
        tags = tags.split(',')
    return frozenset(t.strip().lower() for t in tags if t and t.strip())


def clamp_engagement(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


## Validates a single record at the collaborator boundary.
##
## Raises ValueError for records that cannot be scored (unknown type, no
## usable timestamp). Negative or non-finite engagement is clamped to 0.
def make_activity(id, activity_type, actor_id, created_at, engagement_score=0,
        target_type=None, target_id=None, site_id=None, tags=None,
        title=None, description=None):
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f'unknown activity type: {activity_type!r}')

    created_at = to_millis(created_at)
    if created_at is None:
        raise ValueError(f'activity {id} has no valid timestamp')

    return ActivityItem(
        id=str(id),
        activity_type=activity_type,
        actor_id=None if actor_id is None else str(actor_id),
        target_type=target_type,
        target_id=None if target_id is None else str(target_id),
        site_id=None if site_id is None else str(site_id),
        tags=normalize_tags(tags),
        engagement_score=clamp_engagement(engagement_score),
        created_at=created_at,
        title=title,
        description=description,
    )


## Builds activity items from store rows (dicts), skipping rows that
## fail validation.
def load_activities(rows):
    items = []
    for row in rows:
        try:
            items.append(make_activity(**row))
        except (TypeError, ValueError) as e:
            logging.warning('dropping activity row %s: %s', row.get('id'), e)
    return items


## Converts a published post row into its feed activity.
def post_to_activity(post):
    on_site = post.get('target_type') == 'site'
    return make_activity(
        id=f"post-{post['id']}",
        activity_type='post_created',
        actor_id=post.get('author_id'),
        target_type='post',
        target_id=post['id'],
        site_id=post.get('target_id') if on_site else None,
        tags=post.get('tags'),
        # comments weigh double
        engagement_score=(post.get('likes_count') or 0) + (post.get('comments_count') or 0) * 2,
        created_at=post.get('published_at') or post.get('created_at'),
        title=post.get('title') or 'New post',
        description=(post.get('excerpt') or post.get('body') or '')[:150] or None,
    )


## Converts a site row into a site_added / site_verified activity.
def site_to_activity(site):
    verified = site.get('verification_status') == 'verified'
    return make_activity(
        id=f"site-{site['id']}",
        activity_type='site_verified' if verified else 'site_added',
        actor_id=site.get('created_by'),
        target_type='site',
        target_id=site['id'],
        site_id=site['id'],
        tags=site.get('tags'),
        engagement_score=site.get('votes_approve') or 0,
        created_at=site.get('created_at'),
        title=f"New site: {site.get('name')}",
        description=(site.get('summary') or '')[:150] or None,
    )


def describe_activity(item):
    return _DESCRIPTIONS.get(item.activity_type, 'shared content')


def to_json(item):
    data = item._asdict()
    data['tags'] = sorted(item.tags)
    data['summary'] = describe_activity(item)
    return data
