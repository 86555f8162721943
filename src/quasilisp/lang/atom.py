import threading
from typing import Callable, Generic, TypeVar

from typing_extensions import Concatenate, ParamSpec

T = TypeVar("T")
P = ParamSpec("P")


class Atom(Generic[T]):
    """Atoms hold the process-wide mutable state of the expander (such as the
    generated name counter and the macro registry) and allow it to be changed
    safely from multiple threads."""

    __slots__ = ("_state", "_lock")

    def __init__(self, state: T) -> None:
        self._state = state
        self._lock = threading.RLock()

    def _compare_and_set(self, old: T, new: T) -> bool:
        with self._lock:
            if self._state is not old:
                return False
            self._state = new
            return True

    def compare_and_set(self, old: T, new: T) -> bool:
        """Compare the current state of the Atom to `old`. If the value is the same,
        atomically set the value of the state of Atom to `new`. Return True if the
        value was swapped. Return False otherwise."""
        return self._compare_and_set(old, new)

    def deref(self) -> T:
        """Return the state stored within the Atom."""
        with self._lock:
            return self._state

    def reset(self, v: T) -> T:
        """Reset the state of the Atom to `v` without regard to the current value."""
        with self._lock:
            self._state = v
            return v

    def swap(
        self, f: Callable[Concatenate[T, P], T], *args: P.args, **kwargs: P.kwargs
    ) -> T:
        """Atomically swap the state of the Atom to the return value of
        `f(old, *args, **kwargs)`, returning the new value."""
        while True:
            oldval = self.deref()
            newval = f(oldval, *args, **kwargs)
            if self._compare_and_set(oldval, newval):
                return newval
