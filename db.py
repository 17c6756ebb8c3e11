## DB layer. The activity store collaborator.
##
## Tables hold timestamps as bigint milliseconds since the epoch.

import logging
import threading
import time

from app_state import config
from heat import HeatFactors
from policy import HEAT_WINDOW

server = config['db']['server'] # FQDN
database = config['db']['database'] # database name
username = config['db']['username']
password = config['db']['password']
driver = config['db']['driver']

## Wrapper around pyodbc.cursor
##
## Handles retry logic and reconnects to SQL Server
## when connection is lost.
class DBCursor(object):
    NUM_RETRIES = 3

    def __init__(self, connect_string=None):
        self.connect_string = connect_string or \
            f'DRIVER={driver};SERVER={server};PORT=1433;DATABASE={database};UID={username};PWD={password}'
        self.cnxn = None
        self.cursor = None

    def connect(self):
        # needs the ODBC driver manager, so only imported once we connect
        import pyodbc

        self.cnxn = pyodbc.connect(self.connect_string)
        self.cursor = self.cnxn.cursor()

    def close(self):
        if self.cnxn is None:
            return
        self.cursor.close()
        self.cnxn.close()
        self.cnxn, self.cursor = None, None

    def _retry(self, run):
        tried = 0
        while True:
            try:
                if self.cnxn is None:
                    self.connect()
                run()
                return
            except Exception as e:
                tried += 1
                if tried == self.NUM_RETRIES:
                    raise

                logging.error(e)
                logging.error('retrying to connect to SQL Server in 1 sec...')

                self.close()
                time.sleep(1)

    def execute(self, statement, *args):
        self._retry(lambda: self.cursor.execute(statement, *args))

    ## Runs [(statement, args)] and commits them as one unit.
    ## A reconnect drops uncommitted work, so a retry replays the whole batch.
    def execute_batch(self, statements):
        def run():
            for statement, args in statements:
                self.cursor.execute(statement, *args)
            self.cnxn.commit()

        self._retry(run)

    def fetchone(self):
        return self.cursor.fetchone()

    def fetchall(self):
        return self.cursor.fetchall()

    def columns(self):
        return [c[0] for c in self.cursor.description]

    def commit(self):
        self.cnxn.commit()


## One DBCursor per thread. Request threads and the score worker
## never share a pyodbc connection.
class ThreadLocalCursor(threading.local):
    def __init__(self, connect_string=None):
        self.db_cursor = DBCursor(connect_string)

    def __getattr__(self, name):
        return getattr(self.db_cursor, name)


def _rows_as_dicts(cursor):
    rows = cursor.fetchall()
    if not rows:
        return []
    columns = cursor.columns()
    return [dict(zip(columns, row)) for row in rows]


## Reads activity, heat factors, importance and follow data; writes back
## recomputed heat scores. Never scores anything itself.
class ActivityStore(object):
    def __init__(self, cursor):
        self.cursor = cursor

    def fetch_activity(self, since, site_id=None):
        query = 'SELECT id, activityType AS activity_type, actorId AS actor_id, \
            targetType AS target_type, targetId AS target_id, siteId AS site_id, \
            tags, engagementScore AS engagement_score, createdAt AS created_at, \
            title, description \
            FROM ActivityFeed WHERE createdAt >= ?'
        args = [since]
        if site_id is not None:
            query += ' AND siteId = ?'
            args.append(site_id)

        self.cursor.execute(query, *args)
        return _rows_as_dicts(self.cursor)

    ## Posts and sites, for deployments where ActivityFeed is not populated.
    def fetch_posts_and_sites(self, since, site_id=None):
        query = 'SELECT id, title, body, excerpt, authorId AS author_id, \
            targetType AS target_type, targetId AS target_id, tags, \
            likesCount AS likes_count, commentsCount AS comments_count, \
            createdAt AS created_at, publishedAt AS published_at \
            FROM Posts WHERE visibility = \'public\' AND publishedAt IS NOT NULL \
            AND deletedAt IS NULL AND publishedAt >= ?'
        args = [since]
        if site_id is not None:
            query += ' AND targetType = \'site\' AND targetId = ?'
            args.append(site_id)
        self.cursor.execute(query, *args)
        posts = _rows_as_dicts(self.cursor)

        query = 'SELECT id, name, summary, createdBy AS created_by, \
            createdAt AS created_at, verificationStatus AS verification_status, \
            votesApprove AS votes_approve, tags \
            FROM Sites WHERE createdAt >= ?'
        args = [since]
        if site_id is not None:
            query += ' AND id = ?'
            args.append(site_id)
        self.cursor.execute(query, *args)
        sites = _rows_as_dicts(self.cursor)

        return posts, sites

    ## Rolling 7-day counters per site.
    def fetch_heat_factors(self, now):
        since = now - HEAT_WINDOW
        self.cursor.execute('SELECT s.id, \
            (SELECT COUNT(*) FROM Posts p WHERE p.targetType = \'site\' AND p.targetId = s.id AND p.createdAt >= ?), \
            (SELECT COUNT(*) FROM Media m WHERE m.siteId = s.id AND m.createdAt >= ?), \
            (SELECT COUNT(*) FROM Votes v WHERE v.siteId = s.id AND v.createdAt >= ?) / 7.0, \
            (SELECT COUNT(DISTINCT visitorId) FROM SiteVisits sv WHERE sv.siteId = s.id AND sv.visitedAt >= ?), \
            (SELECT COUNT(*) FROM Comments c WHERE c.siteId = s.id AND c.createdAt >= ?) \
            FROM Sites s', since, since, since, since, since)

        factors = {}
        for row in self.cursor.fetchall():
            factors[str(row[0])] = HeatFactors(
                recent_posts=row[1],
                recent_media=row[2],
                vote_velocity=float(row[3]),
                visitor_count=row[4],
                comment_count=row[5],
            )
        return factors

    def save_heat_scores(self, scores):
        self.cursor.execute_batch([
            ('UPDATE Sites SET heatScore = ?, heatTier = ?, \
                heatCalculatedAt = ?, trendReason = ? WHERE id = ?',
                (score.heat_score, score.heat_tier, score.last_calculated,
                score.trend_reason, score.site_id))
            for score in scores
        ])

    def fetch_importance(self):
        self.cursor.execute('SELECT id, importanceScore, activityScore, activityUpdatedAt FROM Sites')
        return [(str(row[0]), row[1], row[2], row[3]) for row in self.cursor.fetchall()]

    def fetch_sites_for_backfill(self):
        self.cursor.execute('SELECT id, slug, name, siteType AS site_type, layer, \
            verificationStatus AS verification_status, trustTier AS trust_tier, \
            mediaCount AS media_count, votesApprove AS votes_approve, \
            votesReject AS votes_reject, importanceScore AS importance_score \
            FROM Sites ORDER BY name')
        return _rows_as_dicts(self.cursor)

    def save_importance_scores(self, updates):
        self.cursor.execute_batch([
            ('UPDATE Sites SET importanceScore = ? WHERE id = ?', (score, site_id))
            for site_id, score in updates
        ])

    ## Returns (followed site ids, followed user ids) for a user.
    def fetch_follows(self, user):
        self.cursor.execute('SELECT siteId FROM SiteFollows WHERE userId = ?', user)
        sites = [str(row[0]) for row in self.cursor.fetchall()]

        self.cursor.execute('SELECT followeeId FROM UserFollows WHERE followerId = ?', user)
        users = [str(row[0]) for row in self.cursor.fetchall()]
        return sites, users

    def fetch_muted(self, user):
        self.cursor.execute('SELECT mutedId FROM UserMutes WHERE userId = ?', user)
        return [str(row[0]) for row in self.cursor.fetchall()]

    def fetch_followed_tags(self, user):
        self.cursor.execute('SELECT tag FROM TagFollows WHERE userId = ?', user)
        return [row[0] for row in self.cursor.fetchall()]

    ## Ids of activity items the user has hidden from their feed.
    def fetch_hidden(self, user):
        self.cursor.execute('SELECT activityId FROM HiddenActivity WHERE userId = ?', user)
        return [str(row[0]) for row in self.cursor.fetchall()]


cursor = ThreadLocalCursor()
store = ActivityStore(cursor)
