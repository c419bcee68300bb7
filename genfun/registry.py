# -*- coding: utf-8; -*-
"""The generalizer registry.

A *generalizer* tells the dispatcher how to reduce a run-time value to a *tag*,
and how to expand a tag into the list of specializers that the value satisfies,
most specific first. The dispatch cache is indexed by tags, so that all values
with the same tag share one cache entry.

For example, the type-of generalizer tags `42` as `int`, and expands `int` into
`[int, numbers.Integral, numbers.Rational, numbers.Real, numbers.Complex,
numbers.Number, object]`. A method specialized on `numbers.Real` thus applies to
`42`, and ranks after a method specialized on `int`.

Which generalizers are needed for a specializer is decided by the generic
function `generalizers`, so new kinds of specializers can be added by adding
methods to it::

    class even_odd:  # a new specializer kind
        ...

    parity_generalizer = define_generalizer("parity", 30,
                                            lambda x: x % 2 if isinstance(x, int) else None,
                                            lambda tag: [even_odd(tag)])

    @augment(generalizers)
    def generalizers(specializer: even_odd):
        return [parity_generalizer]

The built-in generalizers, in descending priority:

  - eql (100): specializers `eql(value)`.
  - head (80): specializers `head(literal)`.
  - record (50): record types, see `genfun.records`.
  - type-of (10): Python classes.
  - universal (0): `typing.Any`. Present on every dispatch axis.

On one dispatch axis, every generalizer computes its own tag, and only ever
expands its own tag. A tag of `None` means "this generalizer has nothing to say
about this value".
"""

__all__ = ["Generalizer", "define_generalizer", "generalizers", "generalizers_for",
           "eql_generalizer", "head_generalizer", "record_generalizer",
           "typeof_generalizer", "universal_generalizer",
           "abstract_supertypes", "add_abstract_supertype"]

from collections import abc
from abc import ABCMeta
import logging
import numbers
import typing

from .model import GenericFunction, _register_generic
from .records import RecordType, isrecordtype, record_ancestors
from .specializers import eql, head, isuniversal

logger = logging.getLogger(__name__)

# Abstract types that the type-of generalizer appends to a class's MRO when the
# class is a (possibly virtual) subclass of them. Read-only; to add one, use
# `add_abstract_supertype`, which also invalidates the dispatch caches.
#
# Any ABC (metaclass `abc.ABCMeta`) used as a specializer is picked up
# automatically, so this is only needed for types whose metaclass customizes
# `__subclasscheck__` some other way.
abstract_supertypes = [numbers.Integral, numbers.Rational, numbers.Real, numbers.Complex, numbers.Number,
                       abc.MutableSequence, abc.Sequence,
                       abc.MutableSet, abc.Set,
                       abc.MutableMapping, abc.Mapping,
                       abc.Collection, abc.Iterable, abc.Callable]

def add_abstract_supertype(cls):
    """Make the type-of generalizer rank `cls` for its virtual subclasses, too.

    Rebuilds every generic function, so no dispatch cache keeps the old ranking.
    """
    from .dispatch import _definition_lock, _rebuild_all
    with _definition_lock:
        if cls not in abstract_supertypes:
            abstract_supertypes.append(cls)
            logger.info("Added abstract supertype {}".format(cls))
        _rebuild_all()

class Generalizer:
    """Reduce values to tags, and expand tags to specializers.

    `name`: str, for introspection.

    `priority`: number. On a dispatch axis, generalizers with a higher priority
                come first, and so do the specializers they produce. Hence a
                higher priority means more specific.

    `tagger`: 1-arg callable, `value -> tag`. The tag must be hashable.
              Return `None` if this generalizer does not apply to the value.
              Two values must get the same tag only if they satisfy exactly
              the same specializers of this generalizer's kind.

    `specializers`: 1-arg callable, `tag -> sequence of specializers`, most
                    specific first. Never called with `None`.

    Generalizers are compared by identity.
    """
    __slots__ = ("name", "priority", "tagger", "specializers")

    def __init__(self, name, priority, tagger, specializers):
        self.name = name
        self.priority = priority
        self.tagger = tagger
        self.specializers = specializers

    def __repr__(self):
        return f"<generalizer {self.name} (priority {self.priority})>"

def define_generalizer(name, priority, tagger, specializers):
    """Make a new `Generalizer`. See its docstring for the parameters."""
    return Generalizer(name, priority, tagger, specializers)

# --------------------------------------------------------------------------------
# Built-in generalizers

# Values and literals that appear in some eql/head specializer. Keyed by
# `(type(x), x)` so that e.g. `1` and `True` stay apart. The tag is the tuple
# of specializers itself. Only registered values get a tag, so the caches stay
# bounded by what the methods mention, not by what the program passes in.
_eql_used = {}
_head_used = {}

def _register_eql(specializer):
    _eql_used[(type(specializer.value), specializer.value)] = (specializer,)

def _register_head(specializer):
    _head_used[(type(specializer.value), specializer.value)] = (specializer,)

# ABCs that appear as specializers, in order of first use. Like the eql table,
# bounded by what the methods mention.
_abcs_used = {}

def _register_abc(specializer):
    _abcs_used[specializer] = True

def _eql_tagger(x):
    try:
        return _eql_used.get((type(x), x))
    except TypeError:  # unhashable, can't be equal to anything registered
        return None

def _head_tagger(x):
    if isinstance(x, (list, tuple)) and x:
        first = x[0]
        try:
            return _head_used.get((type(first), first))
        except TypeError:
            return None
    return None

def _registered_specializers(tag):
    return tag

def _record_tagger(x):
    cls = type(x)
    if isinstance(cls, RecordType):
        return cls
    return None

def _typeof_specializers(cls):
    mro = [c for c in cls.__mro__ if c is not object]
    supers = []
    for a in abstract_supertypes + list(_abcs_used):
        if a not in mro and a not in supers and issubclass(cls, a):
            supers.append(a)
    # A subclass is a subclass of strictly more of the candidates than its supertypes are.
    depth = {a: sum(1 for b in supers if issubclass(a, b)) for a in supers}
    supers.sort(key=lambda a: depth[a], reverse=True)  # stable
    return mro + supers + [object]

eql_generalizer = Generalizer("eql", 100, _eql_tagger, _registered_specializers)
head_generalizer = Generalizer("head", 80, _head_tagger, _registered_specializers)
record_generalizer = Generalizer("record", 50, _record_tagger, record_ancestors)
typeof_generalizer = Generalizer("type-of", 10, type, _typeof_specializers)
universal_generalizer = Generalizer("universal", 0, lambda x: None, lambda tag: [typing.Any])

# --------------------------------------------------------------------------------
# Resolving specializers to generalizers

generalizers = _register_generic(GenericFunction("genfun.registry.generalizers", ("specializer",), doc="""
Return the list of generalizers needed to dispatch on `specializer`.

This is a generic function; add methods to support new kinds of specializers.
Methods that want to add to what a less specific method returns can use
`call_next_method`. The universal generalizer is always added by the
dispatch machinery, and need not be returned.

Raises `TypeError` for an unknown kind of specializer.
"""))

def _bootstrap_generalizers(specializer):
    """Resolve the built-in specializer kinds, until `generalizers` has its methods."""
    if isuniversal(specializer):
        return [universal_generalizer]
    if isinstance(specializer, eql):
        _register_eql(specializer)
        return [eql_generalizer]
    if isinstance(specializer, head):
        _register_head(specializer)
        return [head_generalizer]
    if isrecordtype(specializer):
        return [record_generalizer, typeof_generalizer]
    if isinstance(specializer, type):
        if isinstance(specializer, ABCMeta):
            _register_abc(specializer)
        return [typeof_generalizer]
    raise TypeError(f"Unknown specializer {repr(specializer)}")

_resolver = _bootstrap_generalizers

def generalizers_for(specializer):
    """Return the generalizers for `specializer`, as a list.

    This is what the definition machinery calls. It delegates to the generic
    function `generalizers`, once that has been set up.
    """
    return list(_resolver(specializer))

def _init_module():  # called by `genfun.__init__`
    global _resolver
    from .dispatch import augment

    @augment(generalizers)
    def unknown_specializer(specializer):
        raise TypeError(f"Unknown specializer {repr(specializer)}")

    @augment(generalizers)
    def universal_specializer(specializer: eql(typing.Any)):
        return [universal_generalizer]

    @augment(generalizers)
    def type_specializer(specializer: type):
        return [typeof_generalizer]

    @augment(generalizers)
    def abc_specializer(call_next_method, specializer: ABCMeta):
        _register_abc(specializer)  # so that virtual subclasses get ranked, too
        return call_next_method()

    @augment(generalizers)
    def record_specializer(call_next_method, specializer: RecordType):
        return [record_generalizer] + list(call_next_method())

    @augment(generalizers)
    def eql_specializer(specializer: eql):
        _register_eql(specializer)
        return [eql_generalizer]

    @augment(generalizers)
    def head_specializer(specializer: head):
        _register_head(specializer)
        return [head_generalizer]

    _resolver = generalizers
    logger.debug("Generalizer registry initialized with {} methods".format(len(generalizers.method_table)))
