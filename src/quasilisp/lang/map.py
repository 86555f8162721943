from builtins import map as pymap
from collections.abc import Iterable, Mapping
from itertools import islice
from typing import Any, Callable, Optional, TypeVar, Union

from immutables import Map as _Map
from pyrsistent import PVector, pvector
from typing_extensions import Unpack

from quasilisp.lang.interfaces import (
    ILispObject,
    IMapEntry,
    IPersistentMap,
    IPersistentVector,
    IWithMeta,
)
from quasilisp.lang.obj import (
    PRINT_SEPARATOR,
    SURPASSED_PRINT_LENGTH,
    SURPASSED_PRINT_LEVEL,
    PrintSettings,
    lrepr,
    process_lrepr_kwargs,
)
from quasilisp.lang.vector import MapEntry
from quasilisp.util import partition

T = TypeVar("T")
K = TypeVar("K")
V = TypeVar("V")


def map_lrepr(
    entries: Callable[[], Iterable[tuple[Any, Any]]],
    start: str,
    end: str,
    meta: Optional[IPersistentMap] = None,
    **kwargs: Unpack[PrintSettings],
) -> str:
    """Produce a Lisp representation of an associative collection, bookended
    with the start and end string supplied. The entries argument must be a
    callable which will produce tuples of key-value pairs.

    The keyword arguments will be passed along to lrepr for the sequence
    elements."""
    print_level = kwargs["print_level"]
    if isinstance(print_level, int) and print_level < 1:
        return SURPASSED_PRINT_LEVEL

    kwargs = process_lrepr_kwargs(**kwargs)

    kw_items = kwargs.copy()
    kw_items["human_readable"] = False

    def entry_reprs():
        for k, v in entries():
            yield f"{lrepr(k, **kw_items)} {lrepr(v, **kw_items)}"

    trailer = []
    print_length = kwargs["print_length"]
    if isinstance(print_length, int):
        items = list(islice(entry_reprs(), print_length + 1))
        if len(items) > print_length:
            items.pop()
            trailer.append(SURPASSED_PRINT_LENGTH)
    else:
        items = list(entry_reprs())

    seq_lrepr = PRINT_SEPARATOR.join(items + trailer)

    if kwargs["print_meta"] and meta:
        kwargs_meta = kwargs
        kwargs_meta["print_level"] = None
        return f"^{lrepr(meta, **kwargs_meta)} {start}{seq_lrepr}{end}"

    return f"{start}{seq_lrepr}{end}"


@lrepr.register(dict)
def _lrepr_py_dict(o: dict, **kwargs: Unpack[PrintSettings]) -> str:
    return f"#py {map_lrepr(o.items, '{', '}', **kwargs)}"


class PersistentMap(IPersistentMap[K, V], ILispObject, IWithMeta):
    """Quasilisp Map.

    Entries are kept in insertion order in a pyrsistent.PVector, so that a map
    form is reproduced in the same order it was read. An immutables.Map indexes
    each key to its position in the entry vector. Associating an existing key
    replaces its value in place.

    Do not instantiate directly. Instead use the map() and hash_map() factory
    methods below."""

    __slots__ = ("_entries", "_index", "_meta")

    def __init__(
        self,
        entries: "PVector[MapEntry[K, V]]",
        index: "_Map[K, int]",
        meta: Optional[IPersistentMap] = None,
    ) -> None:
        self._entries = entries
        self._index = index
        self._meta = meta

    @classmethod
    def from_coll(
        cls,
        members: Union[Mapping[K, V], Iterable[tuple[K, V]]],
        meta: Optional[IPersistentMap] = None,
    ) -> "PersistentMap[K, V]":
        if isinstance(members, Mapping):
            members = members.items()
        return _EMPTY_MAP.with_meta(meta).assoc(
            *(e for pair in members for e in pair)
        )

    def __bool__(self):
        return True

    def __call__(self, key, default=None):
        return self.val_at(key, default)

    def __contains__(self, item):
        return item in self._index

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Mapping):
            return NotImplemented
        if len(self) != len(other):
            return False
        for k, v in self.items():
            if k not in other or other[k] != v:
                return False
        return True

    def __getitem__(self, item):
        return self._entries[self._index[item]].value

    def __hash__(self):
        return hash(frozenset(self.items()))

    def __iter__(self):
        for entry in self._entries:
            yield entry.key

    def __len__(self):
        return len(self._entries)

    def _lrepr(self, **kwargs: Unpack[PrintSettings]):
        return map_lrepr(
            self.items,
            start="{",
            end="}",
            meta=self._meta,
            **kwargs,
        )

    @property
    def meta(self) -> Optional[IPersistentMap]:
        return self._meta

    def with_meta(self, meta: Optional[IPersistentMap]) -> "PersistentMap":
        return PersistentMap(self._entries, self._index, meta=meta)

    def items(self):  # type: ignore[override]
        return [(entry.key, entry.value) for entry in self._entries]

    def entries(self) -> Iterable[MapEntry[K, V]]:
        """Return the entries of this map as key/value pairs in insertion order."""
        return iter(self._entries)

    def assoc(self, *kvs) -> "PersistentMap[K, V]":
        entries = self._entries.evolver()
        with self._index.mutate() as index:
            for k, v in partition(kvs, 2):
                pos = index.get(k)
                if pos is None:
                    index[k] = len(entries)
                    entries.append(MapEntry.of(k, v))
                else:
                    entries[pos] = MapEntry.of(k, v)
            return PersistentMap(entries.persistent(), index.finish(), meta=self._meta)

    def dissoc(self, *ks) -> "PersistentMap[K, V]":
        removed = set(ks)
        return PersistentMap.from_coll(
            ((k, v) for k, v in self.items() if k not in removed), meta=self._meta
        )

    def entry(self, k) -> Optional[IMapEntry[K, V]]:
        pos = self._index.get(k)
        if pos is None:
            return None
        return self._entries[pos]

    def val_at(self, k, default=None):
        pos = self._index.get(k)
        if pos is None:
            return default
        return self._entries[pos].value

    def cons(  # type: ignore[override]
        self,
        *elems: Union[
            IPersistentMap[K, V],
            IMapEntry[K, V],
            IPersistentVector[Union[K, V]],
            Mapping[K, V],
        ],
    ) -> "PersistentMap[K, V]":
        kvs: list = []
        try:
            for elem in elems:
                if isinstance(elem, (IPersistentMap, Mapping)):
                    for k, v in elem.items():
                        kvs.extend((k, v))
                elif isinstance(elem, IMapEntry):
                    kvs.extend((elem.key, elem.value))
                elif elem is None:
                    continue
                else:
                    entry: IMapEntry[K, V] = MapEntry.from_vec(elem)
                    kvs.extend((entry.key, entry.value))
        except (TypeError, ValueError) as e:
            raise ValueError(
                "Argument to map conj must be another Map or castable to MapEntry"
            ) from e
        return self.assoc(*kvs)


_EMPTY_MAP: PersistentMap = PersistentMap(pvector(), _Map())
EMPTY: PersistentMap = _EMPTY_MAP


def map(  # pylint:disable=redefined-builtin
    kvs: Mapping[K, V], meta: Optional[IPersistentMap] = None
) -> PersistentMap[K, V]:
    """Creates a new map."""
    return PersistentMap.from_coll(kvs.items(), meta=meta)


def from_entries(entries: Iterable[MapEntry[K, V]]) -> PersistentMap[K, V]:
    return EMPTY.cons(*entries)


def hash_map(*pairs) -> PersistentMap:
    """Creates a new map from alternating keys and values."""
    if len(pairs) % 2 != 0:
        raise ValueError("hash_map requires an even number of key/value arguments")
    entries = pymap(lambda v: MapEntry.of(v[0], v[1]), partition(pairs, 2))
    return from_entries(entries)
