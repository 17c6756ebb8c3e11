## Store global variables (such as config and Redis connection) here

import configparser
import os
import redis

DEFAULTS = {
    'app': {
        'LOG_FILE': '',
        'LOG_LEVEL': 'DEBUG',
        'PORT': '7191',
    },
    'db': {
        'server': 'localhost',
        'database': 'feed',
        'username': '',
        'password': '',
        'driver': '{ODBC Driver 17 for SQL Server}',
    },
    'redis': {
        'host': 'localhost',
        'port': '6379',
        'db': '0',
    },
    'feed': {
        'page_size': '30',
        'diversity': 'true',
        'trending_window_hours': '168',
    },
    'preferences': {
        # sample follows shown to users who don't follow anything yet
        'fallback_sites': '',
        'fallback_users': '',
        'fallback_tags': '',
    },
}

config = configparser.ConfigParser()
config.read_dict(DEFAULTS)
config.read(os.environ.get('FEED_CONFIG', './app.ini'))

# no connection is opened until the first command
r = redis.Redis(host=config['redis']['host'],
        port=config['redis'].getint('port'),
        db=config['redis'].getint('db'))
