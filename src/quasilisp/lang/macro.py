import inspect
import logging
from collections.abc import Iterable, Sequence
from typing import Any, Callable, Optional, Union

import attr

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.atom import Atom
from quasilisp.lang.evaluator import Evaluator
from quasilisp.lang.exception import ArityMismatch, UnknownMacro
from quasilisp.lang.interfaces import IPersistentMap
from quasilisp.lang.typing import ReaderForm
from quasilisp.util import Maybe

logger = logging.getLogger(__name__)

AMPERSAND = sym.symbol("&")
FORM_SYM = sym.symbol("&form")

_MACRO = kw.keyword("macro")
_EXPECTED = kw.keyword("expected")
_ACTUAL = kw.keyword("actual")

Transformer = Callable[..., ReaderForm]


@attr.frozen
class ParamPattern:
    """The parameters of a macro: zero or more fixed parameter names, optionally
    followed by `& rest` which collects every remaining argument into a list."""

    fixed: tuple[sym.Symbol, ...] = ()
    rest: Optional[sym.Symbol] = None

    @classmethod
    def from_form(
        cls, params: Union[vec.PersistentVector, llist.PersistentList]
    ) -> "ParamPattern":
        """Create a pattern from a parameter vector form such as `[a b & more]`."""
        if not isinstance(params, (vec.PersistentVector, llist.PersistentList)):
            raise ValueError(f"Macro parameters must be a vector, not {params!r}")

        fixed: list[sym.Symbol] = []
        elems = list(params)
        for i, p in enumerate(elems):
            if not isinstance(p, sym.Symbol):
                raise ValueError(f"Macro parameter must be a symbol, not {p!r}")
            if p == AMPERSAND:
                if len(elems) - i != 2 or not isinstance(elems[i + 1], sym.Symbol):
                    raise ValueError(
                        "Expected exactly one rest parameter symbol after &"
                    )
                return ParamPattern(tuple(fixed), elems[i + 1])
            fixed.append(p)
        return ParamPattern(tuple(fixed))

    @classmethod
    def from_names(cls, *names: str) -> "ParamPattern":
        """Create a pattern from parameter names given as strings, as
        `ParamPattern.from_names("test", "&", "body")`."""
        return cls.from_form(vec.vector(sym.symbol(name) for name in names))

    @classmethod
    def from_fn(cls, f: Callable) -> "ParamPattern":
        """Create a pattern from the signature of a Python macro transformer.

        The first parameter of the transformer receives the macro call form
        itself and is not part of the pattern. Remaining positional parameters
        are the fixed parameters and `*args` is the rest parameter."""
        fixed: list[sym.Symbol] = []
        rest: Optional[sym.Symbol] = None
        params = list(inspect.signature(f).parameters.values())
        if not params or params[0].kind not in {
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        }:
            raise ValueError("Macro transformers must accept the call form first")

        for p in params[1:]:
            if p.kind in {
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            }:
                if p.default is not inspect.Parameter.empty:
                    raise ValueError(
                        f"Macro transformer parameter {p.name} may not have a default"
                    )
                fixed.append(sym.symbol(p.name))
            elif p.kind == inspect.Parameter.VAR_POSITIONAL:
                rest = sym.symbol(p.name)
            elif p.default is inspect.Parameter.empty and p.kind != p.VAR_KEYWORD:
                raise ValueError(
                    f"Macro transformer has required keyword-only parameter {p.name}"
                )
        return ParamPattern(tuple(fixed), rest)

    @property
    def names(self) -> tuple[sym.Symbol, ...]:
        """Return every name bound by this pattern, in parameter order."""
        if self.rest is not None:
            return (*self.fixed, self.rest)
        return self.fixed

    @property
    def arity(self) -> str:
        """Return a printable description of the accepted argument counts."""
        if self.rest is not None:
            return f"{len(self.fixed)}+"
        return str(len(self.fixed))

    def accepts(self, nargs: int) -> bool:
        if self.rest is not None:
            return nargs >= len(self.fixed)
        return nargs == len(self.fixed)

    def check_arity(self, name: sym.Symbol, form: ReaderForm, nargs: int) -> None:
        if not self.accepts(nargs):
            raise ArityMismatch(
                f"Wrong number of args ({nargs}) passed to macro {name}; "
                f"expected {self.arity}",
                form=form,
                details=lmap.map(
                    {_MACRO: name, _EXPECTED: self.to_form(), _ACTUAL: nargs}
                ),
            )

    def bind(
        self, name: sym.Symbol, form: ReaderForm, args: Sequence[ReaderForm]
    ) -> dict[sym.Symbol, ReaderForm]:
        """Bind the unevaluated argument forms `args` of the macro call `form` to
        the names in this pattern, in parameter order.

        The rest parameter (if any) is bound to a list of the remaining
        arguments, which is empty if there are none."""
        self.check_arity(name, form, len(args))
        bindings: dict[sym.Symbol, ReaderForm] = dict(zip(self.fixed, args))
        if self.rest is not None:
            bindings[self.rest] = llist.list(args[len(self.fixed) :])
        return bindings

    def to_form(self) -> vec.PersistentVector:
        if self.rest is not None:
            return vec.vector((*self.fixed, AMPERSAND, self.rest))
        return vec.vector(self.fixed)


@attr.frozen
class MacroDefinition:
    """A macro, stored in a :py:class:`MacroRegistry` under its name.

    The transformer is called as `transformer(form, *args)` with the entire
    unevaluated call form followed by its unevaluated argument forms, and must
    return the form which replaces the call."""

    name: sym.Symbol
    params: ParamPattern
    transformer: Transformer
    doc: Optional[str] = None

    @classmethod
    def from_fn(
        cls, name: sym.Symbol, f: Transformer, doc: Optional[str] = None
    ) -> "MacroDefinition":
        """Create a macro whose transformer is the Python function `f`."""
        return MacroDefinition(
            name, ParamPattern.from_fn(f), f, doc=doc if doc is not None else f.__doc__
        )

    @classmethod
    def from_body(
        cls,
        name: sym.Symbol,
        params: Union[ParamPattern, vec.PersistentVector],
        body: Iterable[ReaderForm],
        evaluator: Evaluator,
        doc: Optional[str] = None,
    ) -> "MacroDefinition":
        """Create a macro whose expansion is computed by evaluating the `body`
        forms (usually a single syntax quote template) with the parameters bound
        to the argument forms. `&form` is bound to the call form. The value of the
        last body form is the expansion."""
        pattern = (
            params
            if isinstance(params, ParamPattern)
            else ParamPattern.from_form(params)
        )
        body_forms = tuple(body)

        def transformer(form, *args):
            env: dict[sym.Symbol, Any] = {FORM_SYM: form}
            env.update(pattern.bind(name, form, args))
            result = None
            for body_form in body_forms:
                result = evaluator.evaluate(body_form, env)
            return result

        return MacroDefinition(name, pattern, transformer, doc=doc)

    def expand(self, form: llist.PersistentList) -> ReaderForm:
        """Invoke the transformer on the macro call `form`, returning the
        unevaluated expansion."""
        args = tuple(form.rest)
        self.params.check_arity(self.name, form, len(args))
        return self.transformer(form, *args)


class MacroRegistry:
    """Registry of macro definitions keyed by name.

    Definitions are stored in an :py:class:`Atom`, so a registry may be read and
    updated from multiple threads. Redefining a macro replaces its definition
    wholesale; forms expanded before the redefinition are not affected."""

    __slots__ = ("_macros", "_warn_on_redefinition")

    def __init__(self, warn_on_redefinition: bool = True) -> None:
        self._macros: Atom[IPersistentMap[sym.Symbol, MacroDefinition]] = Atom(
            lmap.EMPTY
        )
        self._warn_on_redefinition = warn_on_redefinition

    def __contains__(self, name: sym.Symbol) -> bool:
        return self.is_macro(name)

    def __len__(self) -> int:
        return len(self._macros.deref())

    def define(self, name: sym.Symbol, definition: MacroDefinition) -> MacroDefinition:
        """Install `definition` under `name`, replacing any existing definition."""
        name = name.with_meta(None)
        old = self._macros.deref().val_at(name)
        self._macros.swap(lambda m: m.assoc(name, definition))
        if old is not None and self._warn_on_redefinition:
            logger.warning(f"redefining macro {name}")
        else:
            logger.debug(f"defined macro {name} {definition.params.to_form()}")
        return definition

    def lookup(self, name: sym.Symbol) -> Optional[MacroDefinition]:
        """Return the definition of the macro `name` or None."""
        return self._macros.deref().val_at(name)

    def resolve(self, name: sym.Symbol) -> MacroDefinition:
        """Return the definition of the macro `name` or raise an UnknownMacro
        exception if there is none."""
        definition = self.lookup(name)
        if definition is None:
            raise UnknownMacro(f"Unable to resolve macro: {name}", form=name)
        return definition

    def is_macro(self, name: Any) -> bool:
        return isinstance(name, sym.Symbol) and self.lookup(name) is not None

    def names(self) -> list[sym.Symbol]:
        return sorted(self._macros.deref().keys())

    def defmacro(
        self, name: Union[str, sym.Symbol, None] = None, doc: Optional[str] = None
    ) -> Callable[[Transformer], Transformer]:
        """Decorator which registers the decorated Python function as a macro
        transformer. The macro is named `name` or, if no name is given, by the
        function name with underscores replaced by dashes."""

        def define_macro(f: Transformer) -> Transformer:
            if name is None:
                macro_name = sym.symbol(f.__name__.replace("_", "-"))
            elif isinstance(name, str):
                macro_name = sym.symbol(name)
            else:
                macro_name = name
            self.define(macro_name, MacroDefinition.from_fn(macro_name, f, doc=doc))
            return f

        return define_macro

    def defmacro_body(
        self,
        name: Union[str, sym.Symbol],
        params: Union[ParamPattern, vec.PersistentVector],
        *body: ReaderForm,
        evaluator: Optional[Evaluator] = None,
        doc: Optional[str] = None,
    ) -> MacroDefinition:
        """Register a macro whose expansion is computed by evaluating the `body`
        forms, as by a `defmacro` form. Unless an evaluator is given, the body is
        evaluated by an evaluator which refuses to take the value of any macro
        in this registry."""
        macro_name = sym.symbol(name) if isinstance(name, str) else name
        ev = Maybe(evaluator).or_else(lambda: Evaluator(registry=self))
        return self.define(
            macro_name, MacroDefinition.from_body(macro_name, params, body, ev, doc=doc)
        )
