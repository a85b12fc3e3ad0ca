# tests/unit/test_registry_concurrency.py
"""验证注册表在多线程下的单写者 / 快照读者纪律。"""

import threading
from concurrent.futures import ThreadPoolExecutor

from tests.helpers.factories import make_uid
from uid_hub.exceptions import DuplicateUIDError
from uid_hub.registry import Registry


def test_concurrent_overwrites_bump_version_exactly_once_each(
    registry: Registry,
) -> None:
    uid = make_uid("Hot")
    calls = 200

    def overwrite(i: int) -> None:
        registry.register(uid, i, overwrite=True)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(overwrite, range(calls)))
    assert registry.get_entry(uid).version == calls
    assert len(registry) == 1


def test_concurrent_first_registration_has_single_winner(registry: Registry) -> None:
    uid = make_uid("Contended")
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    lock = threading.Lock()

    def attempt(i: int) -> None:
        barrier.wait()
        try:
            registry.register(uid, i)
            result = "ok"
        except DuplicateUIDError:
            result = "duplicate"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("duplicate") == 7
    assert registry.get_entry(uid).version == 1


def test_readers_observe_consistent_snapshots(registry: Registry) -> None:
    """读者在写入进行中看到的快照里，每条记录都是完整的。"""
    stop = threading.Event()
    errors: list[str] = []

    def reader() -> None:
        while not stop.is_set():
            entries = registry.entries()
            if len({e.uid.key for e in entries}) != len(entries):
                errors.append("duplicate key in snapshot")
            list(registry.validate_all())

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for t in readers:
        t.start()
    try:
        for i in range(300):
            registry.register(make_uid(f"T{i}"), i)
            if i % 3 == 0:
                registry.deregister(make_uid(f"T{i}"))
    finally:
        stop.set()
        for t in readers:
            t.join()

    assert errors == []
    assert len(registry) == 200
