"""Functions available to construction expressions and macro bodies run by the
reference evaluator.

Syntax quote expansions refer to these functions by their namespace qualified
names (such as `quasilisp.core/concat`), so they can never be shadowed by a local
of the same name at the point a template is evaluated."""

from collections.abc import Iterable
from itertools import chain
from typing import Any, Callable, Optional, TypeVar

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.gensym import DEFAULT_GENSYM_PREFIX
from quasilisp.lang.gensym import gensym as _gensym
from quasilisp.lang.obj import lrepr

CORE_NS = "quasilisp.core"

F = TypeVar("F", bound=Callable)

CORE_FNS: dict[sym.Symbol, Callable] = {}


def _core_fn(name: str) -> Callable[[F], F]:
    """Register the decorated function in the core namespace as `name`."""

    def register(f: F) -> F:
        CORE_FNS[sym.symbol(name, ns=CORE_NS)] = f
        return f

    return register


def _to_seq(coll: Any) -> Iterable:
    if coll is None:
        return ()
    if isinstance(coll, lmap.PersistentMap):
        return coll.entries()
    if isinstance(coll, (str, sym.Symbol, kw.Keyword)) or not isinstance(
        coll, Iterable
    ):
        raise TypeError(f"Don't know how to create a sequence from {lrepr(coll)}")
    return coll


@_core_fn("list")
def list_(*args) -> llist.PersistentList:
    return llist.list(args)


@_core_fn("vector")
def vector(*args) -> vec.PersistentVector:
    return vec.vector(args)


@_core_fn("hash-map")
def hash_map(*kvs) -> lmap.PersistentMap:
    return lmap.hash_map(*kvs)


@_core_fn("concat")
def concat(*seqs) -> llist.PersistentList:
    """Return a list of the elements of each of `seqs` in order. nil is treated as
    an empty sequence."""
    return llist.list(chain.from_iterable(_to_seq(s) for s in seqs))


@_core_fn("seq")
def seq(coll) -> Optional[llist.PersistentList]:
    elems = llist.list(_to_seq(coll))
    if elems.is_empty:
        return None
    return elems


@_core_fn("apply")
def apply(f: Callable, *args):
    """Call `f` with the given arguments, where the final argument is a sequence
    whose elements are passed as individual arguments."""
    if not args:
        return f()
    *fixed, final = args
    return f(*fixed, *_to_seq(final))


@_core_fn("cons")
def cons(o, coll) -> llist.PersistentList:
    return llist.list(chain((o,), _to_seq(coll)))


@_core_fn("first")
def first(coll):
    for elem in _to_seq(coll):
        return elem
    return None


@_core_fn("second")
def second(coll):
    return first(rest(coll))


@_core_fn("rest")
def rest(coll) -> llist.PersistentList:
    return llist.list(_to_seq(coll))[1:]


@_core_fn("count")
def count(coll) -> int:
    return sum(1 for _ in _to_seq(coll))


@_core_fn("map")
def map_(f: Callable, *colls) -> llist.PersistentList:
    return llist.list(f(*elems) for elems in zip(*(_to_seq(c) for c in colls)))


@_core_fn("symbol")
def symbol(name: str, ns: Optional[str] = None) -> sym.Symbol:
    return sym.symbol(name, ns=ns)


@_core_fn("keyword")
def keyword(name: str, ns: Optional[str] = None) -> kw.Keyword:
    return kw.keyword(name, ns=ns)


@_core_fn("gensym")
def gensym(prefix: str = DEFAULT_GENSYM_PREFIX) -> sym.Symbol:
    return _gensym(prefix)


@_core_fn("str")
def str_(*args) -> str:
    return "".join(lrepr(arg, human_readable=True) for arg in args if arg is not None)


@_core_fn("=")
def equals(o, *others) -> bool:
    return all(o == other for other in others)
