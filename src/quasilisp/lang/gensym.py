import logging
from collections.abc import Iterator, MutableMapping

from quasilisp.lang import symbol as sym
from quasilisp.lang.atom import Atom

logger = logging.getLogger(__name__)

DEFAULT_GENSYM_PREFIX = "G_"

# Use an atomically incremented integer as a suffix for all generated symbol
# names so no two expansions (on any thread) ever produce the same name
_NAME_COUNTER = Atom(1)


def next_name_id() -> int:
    """Increment the name counter and return the next value."""
    return _NAME_COUNTER.swap(lambda x: x + 1)


def genname(prefix: str) -> str:
    """Generate a unique name with the given prefix."""
    i = next_name_id()
    return f"{prefix}_{i}"


def gensym(prefix: str = DEFAULT_GENSYM_PREFIX) -> sym.Symbol:
    """Return a new symbol with a unique name starting with `prefix`."""
    return sym.symbol(genname(prefix))


class GensymEnvironment(MutableMapping[str, sym.Symbol]):
    """Mapping of auto-gensym symbol names (such as `x#`) to the symbols generated
    for them during a single syntax quote expansion.

    Every occurrence of the same auto-gensym symbol inside one expansion resolves
    to the same generated symbol. A new environment must be used for each
    expansion so that separate expansions never share generated names."""

    __slots__ = ("_env",)

    def __init__(self) -> None:
        self._env: dict[str, sym.Symbol] = {}

    def __getitem__(self, k: str) -> sym.Symbol:
        return self._env[k]

    def __setitem__(self, k: str, v: sym.Symbol) -> None:
        self._env[k] = v

    def __delitem__(self, k: str) -> None:
        del self._env[k]

    def __iter__(self) -> Iterator[str]:
        return iter(self._env)

    def __len__(self) -> int:
        return len(self._env)

    def resolve(self, form: sym.Symbol) -> sym.Symbol:
        """Return the generated symbol for the auto-gensym symbol `form`, creating
        it if this is the first occurrence in this environment.

        The generated symbol keeps the metadata of the symbol it replaces."""
        assert form.is_auto_gensym, "Only auto-gensym symbols may be resolved"
        try:
            return self._env[form.name]
        except KeyError:
            genned = sym.symbol(genname(form.gensym_prefix)).with_meta(form.meta)
            self._env[form.name] = genned
            logger.debug(f"Resolved auto-gensym {form.name} to {genned.name}")
            return genned
