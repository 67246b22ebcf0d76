import threading
import time

import numpy as np

from lshann import LSHIndex
from lshann.utils.locks import ReadWriteLock


def test_concurrent_insertion():
    """
    Test that multiple threads can insert vectors concurrently without race conditions.
    """
    dim = 32
    num_vectors = 200
    num_threads = 10
    vectors_per_thread = num_vectors // num_threads

    index = LSHIndex.create(dimension=dim, bucket_width=2.0, functions_per_table=3, table_count=5)

    def worker(thread_id: int):
        """
        Inserts a contiguous block of random vectors keyed by their global position.
        """
        rng = np.random.default_rng(thread_id)
        start_idx = thread_id * vectors_per_thread
        for i in range(vectors_per_thread):
            index.insert(str(start_idx + i), rng.standard_normal(dim))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(index) == num_vectors
    assert sorted(index.keys(), key=int) == [str(i) for i in range(num_vectors)]
    # every table holds exactly one entry per key
    assert [len(table) for table in index._tables] == [num_vectors] * 5


def test_queries_never_see_partial_updates():
    """
    Readers query a key while writers keep replacing and removing it. Queries
    must never fail, and once writers stop every table agrees with the store.
    """
    dim = 8
    index = LSHIndex.create(dimension=dim, bucket_width=1.0, functions_per_table=2, table_count=6, workers=3)
    rng = np.random.default_rng(0)
    versions = [rng.standard_normal(dim) for _ in range(5)]
    for i in range(50):
        index.insert(f"bg{i}", rng.standard_normal(dim))

    stop = threading.Event()
    errors = []

    def writer():
        n = 0
        while not stop.is_set():
            index.insert("target", versions[n % len(versions)])
            if n % 3 == 0:
                index.remove("target")
            n += 1

    def reader():
        while not stop.is_set():
            for version in versions:
                try:
                    for key, score in index.query(version, 3):
                        assert score >= 0.0
                        assert key == "target" or key.startswith("bg")
                except Exception as exc:  # pragma: no cover - reported below
                    errors.append(exc)
                    return

    threads = [threading.Thread(target=writer) for _ in range(2)]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    time.sleep(0.5)
    stop.set()
    for t in threads:
        t.join()
    index.close()

    assert errors == []
    # the tables agree with the store once writers are done
    expected = len(index)
    assert [len(table) for table in index._tables] == [expected] * 6


def test_concurrent_remove_is_idempotent():
    index = LSHIndex.create(dimension=4, table_count=3)
    for i in range(20):
        index.insert(str(i), [float(i), 1.0, 2.0, 3.0])

    results = []
    lock = threading.Lock()

    def remover():
        removed = [index.remove(str(i)) for i in range(20)]
        with lock:
            results.append(removed)

    threads = [threading.Thread(target=remover) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # each key was removed exactly once across all threads
    assert [sum(run[i] for run in results) for i in range(20)] == [1] * 20
    assert len(index) == 0
    assert all(table.bucket_count == 0 for table in index._tables)


def test_read_write_lock_excludes_writers_from_readers():
    lock = ReadWriteLock()
    state = {"readers": 0, "writers": 0, "violations": 0}
    guard = threading.Lock()

    def reader():
        for _ in range(200):
            with lock.read():
                with guard:
                    state["readers"] += 1
                    if state["writers"]:
                        state["violations"] += 1
                with guard:
                    state["readers"] -= 1

    def writer():
        for _ in range(100):
            with lock.write():
                with guard:
                    state["writers"] += 1
                    if state["writers"] > 1 or state["readers"]:
                        state["violations"] += 1
                with guard:
                    state["writers"] -= 1

    threads = [threading.Thread(target=reader) for _ in range(4)]
    threads += [threading.Thread(target=writer) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert state["violations"] == 0


def test_read_lock_allows_parallel_readers():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)

    def reader():
        with lock.read():
            # all three readers must hold the lock at once to pass the barrier
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not inside.broken
