import threading
from functools import total_ordering
from typing import Optional

from typing_extensions import Unpack

from quasilisp.lang.interfaces import ILispObject, ILookup, INamed
from quasilisp.lang.obj import PrintSettings

_LOCK = threading.Lock()
_INTERN: dict[int, "Keyword"] = {}


@total_ordering
class Keyword(ILispObject, INamed):
    __slots__ = ("_name", "_ns", "_hash")

    def __init__(self, name: str, ns: Optional[str] = None) -> None:
        self._name = name
        self._ns = ns
        self._hash = hash_kw(name, ns)

    @property
    def name(self) -> str:
        return self._name

    @property
    def ns(self) -> Optional[str]:
        return self._ns

    def _lrepr(self, **kwargs: Unpack[PrintSettings]) -> str:
        if self._ns is not None:
            return f":{self._ns}/{self._name}"
        return f":{self._name}"

    def __eq__(self, other):
        return self is other or (
            isinstance(other, Keyword)
            and (self._name, self._ns) == (other._name, other._ns)
        )

    def __hash__(self):
        return self._hash

    def __lt__(self, other):
        if other is None:  # pragma: no cover
            return False
        if not isinstance(other, Keyword):
            return NotImplemented
        if self._ns is None and other._ns is None:
            return self._name < other._name
        if self._ns is None:
            return True
        if other._ns is None:
            return False
        return (self._ns, self._name) < (other._ns, other._name)

    def __call__(self, m: ILookup, default=None):
        try:
            return m.val_at(self, default)
        except (AttributeError, TypeError):
            return default

    def __reduce__(self):
        return keyword, (self._name, self._ns)


def hash_kw(name: str, ns: Optional[str] = None) -> int:
    """Return the hash of a potential Keyword instance by its name and namespace."""
    return hash((name, ns))


def keyword(name: str, ns: Optional[str] = None) -> Keyword:
    """Create a new keyword with name and optional namespace.

    Keywords are interned: repeated calls with the same name and namespace
    return the identical object."""
    kw_hash = hash_kw(name, ns)
    with _LOCK:
        found = _INTERN.get(kw_hash)
        if found is not None and found.name == name and found.ns == ns:
            return found
        kw = Keyword(name, ns=ns)
        _INTERN[kw_hash] = kw
        return kw
