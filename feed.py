## Creates Flask app.
##
## Defines routing and controllers for endpoints,
## starts async worker to recompute scores in the background.

import logging
import queue
import time
import traceback
from flask import Flask, request, jsonify

import async_worker
import heat
import services
from app_state import config, r
from db import store
from filters import parse_filters, to_json as filters_to_json
from policy import DEFAULT_SORT, MAX_PAGE_SIZE, HOUR

# log configuration
logging.basicConfig(filename=config['app']['LOG_FILE'] or None,
        level=config['app']['LOG_LEVEL'],
        format='%(asctime)s [%(levelname)s] %(threadName)s : %(message)s')

app = Flask('feed')

feed_config = config['feed']
fallback = services.fallback_preferences(config['preferences'])
trending_window = feed_config.getint('trending_window_hours') * HOUR

work_q = queue.Queue()
async_worker.start(work_q)


def now():
    return int(time.time() * 1000)


def _int_arg(name, default, low, high):
    value = request.args.get(name)
    if value is None or value == '':
        return default
    return max(low, min(high, int(value)))


def _handle(controller):
    try:
        app.logger.info('%s %s', request.method, request.url)
        return controller()
    except ValueError as e:
        app.logger.warning(e)
        return jsonify({'error': str(e)}), 400
    # can get more specific later if need be
    except Exception as e:
        app.logger.error(e)
        app.logger.error(traceback.format_exc())
        return jsonify({'error': 'internal server error'}), 500


## Simple health check.
@app.route('/ping')
def ping():
    app.logger.info('%s %s', request.method, request.url)
    return 'PONG'

## Generates page of ranked activity for a given user.
@app.route('/<user>/feed')
def get_feed(user):
    def controller():
        sort_by = request.args.get('sort') or DEFAULT_SORT
        filters = parse_filters(request.args)
        page_size = _int_arg('limit', feed_config.getint('page_size'), 1, MAX_PAGE_SIZE)
        offset = _int_arg('offset', 0, 0, 10 ** 9)

        page = services.get_feed_page(store, user, sort_by, filters, now(),
            page_size, offset, fallback=fallback,
            diversity=feed_config.getboolean('diversity'))
        page['meta']['filters'] = filters_to_json(filters)
        return jsonify(page)

    return _handle(controller)

## Heat scores for every site, served from cache unless refresh=true.
@app.route('/sites/heat')
def get_site_heat():
    def controller():
        refresh = request.args.get('refresh') == 'true'
        scores = services.get_heat_scores(store, r, now(), refresh)
        return jsonify([heat.to_json(s) for s in scores])

    return _handle(controller)

## "What's hot" panel.
@app.route('/sites/hot')
def get_hot_sites():
    def controller():
        limit = _int_arg('limit', 5, 1, 50)
        scores = services.get_hot_sites(store, r, now(), limit)
        return jsonify([heat.to_json(s) for s in scores])

    return _handle(controller)

## Queues a heat recompute and returns immediately.
@app.route('/sites/heat/refresh', methods=['POST'])
def refresh_site_heat():
    def controller():
        work_q.put(lambda: services.refresh_heat_scores(store, r, now()))
        return jsonify({'queued': True}), 202

    return _handle(controller)

## Sites ranked by importance + decayed activity for a map zoom level.
@app.route('/map/sites')
def get_map_sites():
    def controller():
        zoom = _int_arg('zoom', 5, 0, 22)
        min_score = request.args.get('min_score')
        if min_score is not None:
            min_score = max(0, min(100, int(min_score)))
        limit = request.args.get('limit')
        if limit is not None:
            limit = int(limit)

        return jsonify(services.get_map_sites(store, r, now(), zoom,
            min_score, limit, trending_window))

    return _handle(controller)

# for debugging purposes
if (__name__ == '__main__'):
    app.run('0.0.0.0', config['app'].getint('PORT'))
