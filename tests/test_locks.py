import gc
import threading
import time

from conftest import TOMORROW
from labbooking.shared import locks


def test_lab_day_key():
    assert locks.lab_day_key(3, TOMORROW) == "booking_lock:lab:3:2030-01-15"


def test_redis_disabled_in_tests():
    assert locks.get_redis_client() is None


def test_lab_day_lock_serializes_same_key():
    events = []

    def worker(name):
        with locks.lab_day_lock(1, TOMORROW):
            events.append(f"{name}-in")
            time.sleep(0.05)
            events.append(f"{name}-out")

    threads = [threading.Thread(target=worker, args=(n,)) for n in ("a", "b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    # No interleaving: each holder leaves before the next enters
    assert events[0][0] == events[1][0]
    assert events[2][0] == events[3][0]


def test_different_lab_days_do_not_share_a_lock():
    with locks.lab_day_lock(1, TOMORROW):
        other = locks._local_lock(locks.lab_day_key(2, TOMORROW))
        assert other.acquire(blocking=False)
        other.release()


def test_idle_lab_day_locks_are_dropped():
    key = locks.lab_day_key(7, TOMORROW)
    with locks.lab_day_lock(7, TOMORROW):
        assert key in locks._local_locks

    gc.collect()
    assert key not in locks._local_locks
