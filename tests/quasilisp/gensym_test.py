import threading

import pytest

from quasilisp.lang import map as lmap
from quasilisp.lang.gensym import GensymEnvironment, genname, gensym, next_name_id
from quasilisp.lang.keyword import keyword
from quasilisp.lang.symbol import symbol


def test_next_name_id_increases():
    first = next_name_id()
    second = next_name_id()
    assert second > first


def test_genname():
    name = genname("x")
    assert name.startswith("x_")
    assert name != genname("x")


def test_gensym():
    s1 = gensym()
    s2 = gensym()
    assert s1 != s2
    assert s1.name.startswith("G_")
    assert s1.ns is None
    assert gensym("prefix").name.startswith("prefix_")


def test_gensym_names_are_unique_across_threads():
    names = []
    lock = threading.Lock()

    def generate():
        local = [genname("t") for _ in range(250)]
        with lock:
            names.extend(local)

    threads = [threading.Thread(target=generate) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert 2000 == len(names)
    assert 2000 == len(set(names))


class TestGensymEnvironment:
    def test_same_marker_resolves_to_same_symbol(self):
        env = GensymEnvironment()
        resolved = env.resolve(symbol("x#"))
        assert resolved == env.resolve(symbol("x#"))
        assert resolved.name.startswith("x_")
        assert not resolved.is_auto_gensym
        assert 1 == len(env)

    def test_different_markers_resolve_to_different_symbols(self):
        env = GensymEnvironment()
        assert env.resolve(symbol("x#")) != env.resolve(symbol("y#"))
        assert {"x#", "y#"} == set(env)

    def test_separate_environments_never_share_names(self):
        assert GensymEnvironment().resolve(symbol("x#")) != GensymEnvironment().resolve(
            symbol("x#")
        )

    def test_resolved_symbol_keeps_metadata(self):
        meta = lmap.map({keyword("tag"): symbol("str")})
        resolved = GensymEnvironment().resolve(symbol("x#", meta=meta))
        assert meta == resolved.meta

    def test_resolve_requires_marker(self):
        with pytest.raises(AssertionError):
            GensymEnvironment().resolve(symbol("x"))
