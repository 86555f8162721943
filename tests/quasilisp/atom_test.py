import threading

from quasilisp.lang import map as lmap
from quasilisp.lang.atom import Atom


def test_atom_deref_and_reset():
    a = Atom(1)
    assert 1 == a.deref()
    assert 2 == a.reset(2)
    assert 2 == a.deref()


def test_atom_compare_and_set():
    m = lmap.map({"a": 1})
    a = Atom(m)
    assert not a.compare_and_set(lmap.map({"a": 1}), lmap.map({"a": 2}))
    assert a.compare_and_set(m, lmap.map({"a": 3}))
    assert lmap.map({"a": 3}) == a.deref()


def test_atom_swap():
    a = Atom(lmap.EMPTY)
    assert lmap.map({"a": 1}) == a.swap(lambda m, k, v: m.assoc(k, v), "a", 1)
    assert lmap.map({"a": 1, "b": 2}) == a.swap(
        lambda m, k, v: m.assoc(k, v), k="b", v=2
    )


def test_atom_swap_is_atomic_across_threads():
    a = Atom(0)

    def incr():
        for _ in range(500):
            a.swap(lambda x: x + 1)

    threads = [threading.Thread(target=incr) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert 4000 == a.deref()
