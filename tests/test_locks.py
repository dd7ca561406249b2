import threading

from infinibox_client.locks import LockRegistry


def test_same_key_shares_a_lock():
    registry = LockRegistry()

    assert registry.lock_for(5) is registry.lock_for(5)
    assert registry.lock_for(5) is not registry.lock_for(6)


def test_locks_are_created_on_demand():
    registry = LockRegistry()

    assert 5 not in registry
    with registry.hold(5):
        assert registry.lock_for(5).locked()
    assert 5 in registry
    assert not registry.lock_for(5).locked()


def test_hold_serializes_callers():
    registry = LockRegistry()
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with registry.hold("cluster"):
            entered.set()
            release.wait(timeout=5)
            order.append("first")

    def second():
        entered.wait(timeout=5)
        with registry.hold("cluster"):
            order.append("second")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for thread in threads:
        thread.start()
    entered.wait(timeout=5)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert order == ["first", "second"]
