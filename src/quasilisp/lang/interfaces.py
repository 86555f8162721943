from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import Generic, Optional, TypeVar

from typing_extensions import Self

from quasilisp.lang.obj import LispObject as _LispObject

T = TypeVar("T")
K = TypeVar("K")
V = TypeVar("V")

T_ExceptionInfo = TypeVar("T_ExceptionInfo", bound="IPersistentMap")


class IExceptionInfo(Exception, Generic[T_ExceptionInfo], ABC):
    """``IExceptionInfo`` types are exception types which contain an optional
    :py:class:`IPersistentMap` data element of contextual information about the thrown
    exception."""

    __slots__ = ()

    @property
    @abstractmethod
    def data(self) -> T_ExceptionInfo:
        raise NotImplementedError()


class IMapEntry(Generic[K, V], ABC):
    """``IMapEntry`` values are produced by iterating over the entries of a map."""

    __slots__ = ()

    @property
    @abstractmethod
    def key(self) -> K:
        raise NotImplementedError()

    @property
    @abstractmethod
    def value(self) -> V:
        raise NotImplementedError()


class IMeta(ABC):
    """``IMeta`` types can optionally include a map of metadata.

    Forms cannot have their metadata mutated, but many forms also implement
    :py:class:`IWithMeta` which allows creating a copy of the structure with new
    metadata. The reader stores source locations in form metadata."""

    __slots__ = ()

    @property
    @abstractmethod
    def meta(self) -> Optional["IPersistentMap"]:
        raise NotImplementedError()


class IWithMeta(IMeta):
    """``IWithMeta`` are :py:class:`IMeta` types which can create copies of themselves
    with new metadata."""

    __slots__ = ()

    @abstractmethod
    def with_meta(self, meta: "Optional[IPersistentMap]") -> Self:
        raise NotImplementedError()


class INamed(ABC):
    """``INamed`` instances are symbolic identifiers with a name and optional
    namespace."""

    __slots__ = ()

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError()

    @property
    @abstractmethod
    def ns(self) -> Optional[str]:
        raise NotImplementedError()


ILispObject = _LispObject


class ISequential(ABC):
    """``ISequential`` is a marker interface for sequential types.

    Lists and Vectors are both considered ``ISequential``. Only ``ISequential``
    containers accept unquote-spliced elements in a syntax quote template."""

    __slots__ = ()


class ILookup(Generic[K, V], ABC):
    """``ILookup`` types allow accessing contained values by a key or index."""

    __slots__ = ()

    @abstractmethod
    def val_at(self, k: K, default: Optional[V] = None) -> Optional[V]:
        raise NotImplementedError()


class IPersistentCollection(Iterable[T]):
    """``IPersistentCollection`` types support creating a new collection with
    additional members."""

    __slots__ = ()

    @abstractmethod
    def cons(self: Self, *elems: T) -> Self:
        raise NotImplementedError()


class IPersistentList(ISequential, IPersistentCollection[T]):
    """``IPersistentList`` is a marker interface for a singly-linked list."""

    __slots__ = ()


class IPersistentVector(Sequence[T], ISequential, IPersistentCollection[T]):
    """``IPersistentVector`` types support creating and modifying persistent vectors."""

    __slots__ = ()

    @abstractmethod
    def assoc(self: Self, *kvs) -> Self:
        raise NotImplementedError()


class IPersistentMap(Mapping[K, V], ILookup[K, V], IPersistentCollection[K]):
    """``IPersistentMap`` types support creating and modifying persistent maps."""

    __slots__ = ()

    @abstractmethod
    def assoc(self: Self, *kvs) -> Self:
        raise NotImplementedError()

    @abstractmethod
    def dissoc(self: Self, *ks: K) -> Self:
        raise NotImplementedError()
