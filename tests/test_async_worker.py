import queue

import async_worker


def test_run_executes_tasks_until_stopped():
    done = []
    work_q = queue.Queue()
    work_q.put(lambda: done.append('a'))
    work_q.put(lambda: done.append('b'))
    work_q.put(None)

    async_worker.run(work_q)

    assert done == ['a', 'b']


def test_failing_task_does_not_stop_the_worker():
    done = []

    def broken():
        raise RuntimeError('store unavailable')

    work_q = queue.Queue()
    work_q.put(broken)
    work_q.put(lambda: done.append('after'))
    work_q.put(None)

    async_worker.run(work_q)

    assert done == ['after']


def test_start_runs_in_background():
    done = []
    work_q = queue.Queue()
    worker = async_worker.start(work_q)

    work_q.put(lambda: done.append(1))
    work_q.join()
    work_q.put(None)
    worker.join(timeout=5)

    assert done == [1]
    assert not worker.is_alive()
