import pytest

from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import vector as vec
from quasilisp.lang.interfaces import (
    ILispObject,
    IPersistentCollection,
    IPersistentList,
    IWithMeta,
)
from quasilisp.lang.keyword import keyword
from quasilisp.lang.symbol import symbol


@pytest.mark.parametrize(
    "interface", [IPersistentCollection, IPersistentList, IWithMeta, ILispObject]
)
def test_list_interface_membership(interface):
    assert isinstance(llist.l(), interface)
    assert issubclass(llist.PersistentList, interface)


def test_list_slice():
    assert isinstance(llist.l(1, 2, 3)[1:], llist.PersistentList)
    assert llist.l(2, 3) == llist.l(1, 2, 3)[1:]


def test_list_index():
    l = llist.l(1, 2, 3)
    assert 1 == l[0]
    assert 3 == l[2]
    with pytest.raises(IndexError):
        l[3]  # pylint: disable=pointless-statement


def test_list_cons():
    meta = lmap.map({"tag": "async"})
    l1 = llist.l(keyword("kw1"), meta=meta)
    l2 = l1.cons(keyword("kw2"))
    assert l1 is not l2
    assert l1 != l2
    assert len(l2) == 2
    assert keyword("kw2") == l2.first
    assert meta == l1.meta


def test_list_first_and_rest():
    assert None is llist.l().first
    assert llist.EMPTY == llist.l().rest

    assert 1 == llist.l(1, 2, 3).first
    assert llist.l(2, 3) == llist.l(1, 2, 3).rest


def test_list_is_empty():
    assert llist.l().is_empty
    assert llist.EMPTY.is_empty
    assert not llist.l(1).is_empty


def test_list_equality_is_kind_sensitive():
    assert llist.l(1, 2) == llist.l(1, 2)
    assert llist.l(1, 2) != vec.v(1, 2)
    assert llist.l(1, 2) != [1, 2]
    assert llist.l(llist.l(1)) != llist.l(vec.v(1))
    assert hash(llist.l(1, 2)) == hash(llist.l(1, 2))


def test_list_meta():
    assert llist.l("vec").meta is None
    meta = lmap.map({"type": symbol("str")})
    assert llist.l("vec", meta=meta).meta == meta


def test_list_with_meta():
    l1 = llist.l("vec")
    assert l1.meta is None

    meta1 = lmap.map({"type": symbol("str")})
    l2 = l1.with_meta(meta1)
    assert l1 is not l2
    assert l1 == l2
    assert l2.meta == meta1


def test_list_repr():
    assert "()" == repr(llist.l())
    assert "(1 :kw sym)" == repr(llist.l(1, keyword("kw"), symbol("sym")))
    assert '("s" (1))' == repr(llist.l("s", llist.l(1)))
