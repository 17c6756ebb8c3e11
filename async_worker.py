## Async worker.
##
## Recomputes scores off the request path. Work items are plain callables;
## None stops the worker.

import logging
import threading


def run(work_q):
    while True:
        work = work_q.get() # blocking call
        try:
            if work is None:
                return
            work()
        except Exception as e:
            # worker outlives failed tasks
            logging.exception('background task failed: %s', e)
        finally:
            work_q.task_done()


def start(work_q):
    worker = threading.Thread(target=run, args=(work_q,), name='score-worker', daemon=True)
    worker.start()
    return worker
