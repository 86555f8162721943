from typing import Optional, TypeVar

from pyrsistent import PList, plist  # noqa # pylint: disable=unused-import
from typing_extensions import Unpack

from quasilisp.lang.interfaces import IPersistentList, IPersistentMap, IWithMeta
from quasilisp.lang.obj import LispObject, PrintSettings
from quasilisp.lang.obj import seq_lrepr as _seq_lrepr

T = TypeVar("T")


class PersistentList(IPersistentList[T], LispObject, IWithMeta):
    """Quasilisp List. Delegates internally to a pyrsistent.PList object.

    Do not instantiate directly. Instead use the l() and list() factory
    methods below."""

    __slots__ = ("_inner", "_meta")

    def __init__(self, wrapped: "PList[T]", meta=None) -> None:
        self._inner = wrapped
        self._meta = meta

    def __bool__(self):
        return True

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, PersistentList) or len(self) != len(other):
            return False
        return all(e1 == e2 for e1, e2 in zip(self._inner, other._inner))

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PersistentList(self._inner[item])
        return self._inner[item]

    def __hash__(self):
        return hash(tuple(self._inner))

    def __iter__(self):
        yield from self._inner

    def __len__(self):
        return len(self._inner)

    def _lrepr(self, **kwargs: Unpack[PrintSettings]) -> str:
        return _seq_lrepr(self._inner, "(", ")", meta=self._meta, **kwargs)

    @property
    def meta(self) -> Optional[IPersistentMap]:
        return self._meta

    def with_meta(self, meta: Optional[IPersistentMap]) -> "PersistentList":
        return PersistentList(self._inner, meta=meta)

    @property
    def is_empty(self) -> bool:
        return not self._inner

    @property
    def first(self):
        try:
            return self._inner.first
        except AttributeError:
            return None

    @property
    def rest(self) -> "PersistentList[T]":
        if self.is_empty:
            return EMPTY
        return PersistentList(self._inner.rest)

    def cons(self, *elems: T) -> "PersistentList[T]":
        l = self._inner
        for elem in elems:
            l = l.cons(elem)
        return PersistentList(l, meta=self._meta)


EMPTY: PersistentList = PersistentList(plist())


def list(members, meta=None) -> PersistentList:  # pylint:disable=redefined-builtin
    """Creates a new list."""
    return PersistentList(plist(iterable=members), meta=meta)


def l(*members, meta=None) -> PersistentList:  # noqa
    """Creates a new list from members."""
    return PersistentList(plist(iterable=members), meta=meta)
