import threading

from services.locks import KeyedLock


def test_hold_is_reentrant_and_released():
    locks = KeyedLock()

    with locks.hold("b", "a"):
        with locks.hold("a"):
            assert locks.active_keys() == ["a", "b"]

    assert locks.active_keys() == []


def test_hold_blocks_other_threads_on_same_key():
    locks = KeyedLock()
    entered = threading.Event()

    def worker():
        with locks.hold("SSC_2025_1"):
            entered.set()

    with locks.hold("SSC_2025_1"):
        thread = threading.Thread(target=worker)
        thread.start()
        assert not entered.wait(0.2)

    assert entered.wait(2)
    thread.join()


def test_different_keys_do_not_block():
    locks = KeyedLock()
    entered = threading.Event()

    def worker():
        with locks.hold("SSC_2025_2"):
            entered.set()

    with locks.hold("SSC_2025_1"):
        thread = threading.Thread(target=worker)
        thread.start()
        assert entered.wait(2)
    thread.join()
