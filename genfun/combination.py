# -*- coding: utf-8; -*-
"""Method combination: build one callable out of the methods applicable to a call.

The *standard method combination* works like in CLOS:

  - The primary methods form a chain, most specific first. Each one may pass
    control to the next one by calling its next-method continuation.
  - `:before` methods all run before the primary chain, most specific first.
  - `:after` methods all run after it, least specific first.
    Their return values are discarded; the primary chain's value is returned.
  - `:around` methods wrap all of the above, most specific outermost. Each one
    decides whether (and with which arguments) to continue inwards.

Any number of `:extra <tag>` qualifier pairs may accompany the role qualifier.
They do not affect the combination.

The combination can be customized per generic function by adding methods to
the generic function `combine_methods`; the standard combination is its default
method. Effective methods are memoized per generic function and method list.
"""

__all__ = ["NextMethod", "next_method_p",
           "combine_methods", "standard_method_combination", "build_combined_method"]

import logging
from weakref import WeakKeyDictionary

from .errors import (NoApplicableMethodError, NoPrimaryMethodError, NoNextMethodError,
                     CyclicDefinitionError, UnsupportedQualifiersError)
from .model import GenericFunction, _register_generic, describe_method
from .qualifiers import BEFORE, AFTER, AROUND, gensym, role_of

logger = logging.getLogger(__name__)

class NextMethod:
    """A next-method continuation.

    Passed as the first argument to methods that use the next method
    (by convention, the parameter is named `call_next_method`).

    Calling it with no arguments calls the next method with the same arguments
    the current method received. Calling it with arguments calls the next method
    with those instead; the rest of the chain then sees the new arguments::

        @generic
        def describe(call_next_method, x: int):
            return f"int, then {call_next_method()}"

        @generic
        def clamp(call_next_method, x: int):
            return call_next_method(max(0, x))  # the rest of the chain sees the clamped value

    If there is no next method, calling the continuation raises
    `NoNextMethodError`. Check beforehand with `next_method_p` (or the
    `available` attribute), if the method has an alternative.
    """
    __slots__ = ("_next", "_args", "_kwargs")

    def __init__(self, next_function, args, kwargs):
        self._next = next_function
        self._args = args
        self._kwargs = kwargs

    def __call__(self, *args, **kwargs):
        if args or kwargs:
            return self._next(*args, **kwargs)
        return self._next(*self._args, **self._kwargs)

    @property
    def available(self):
        """Whether there is a next method to call."""
        return not getattr(self._next, "_no_next_method", False)

    def __repr__(self):
        return f"<next-method continuation {'available' if self.available else 'unavailable'}>"

def next_method_p(continuation):
    """Return whether the next-method `continuation` has a next method to call."""
    return continuation.available

def _no_next_method(generic, method):
    """Return a function that raises `NoNextMethodError` for `method` of `generic`."""
    def no_next_method(*args, **kwargs):
        raise NoNextMethodError(generic.name, method, args, kwargs)
    no_next_method._no_next_method = True
    return no_next_method

def _method_function(generic, method, next_function):
    """Return a callable that runs `method`, with `next_function` as its next method.

    This is one link of a method chain. A method that does not use the next
    method is returned as-is.
    """
    function = method.function
    if not method.uses_next_method:
        return function
    if next_function is None:
        next_function = _no_next_method(generic, method)
    def call_method(*args, **kwargs):
        return function(NextMethod(next_function, args, kwargs), *args, **kwargs)
    return call_method

def _with_before_and_after(primary, befores, afters):
    def call_with_before_and_after(*args, **kwargs):
        for f in befores:
            f(*args, **kwargs)
        result = primary(*args, **kwargs)
        for f in afters:
            f(*args, **kwargs)
        return result
    return call_with_before_and_after

def _raise_no_applicable_method(generic):
    def no_applicable_method(*args, **kwargs):
        candidates = [describe_method(m, generic.name) for m in generic.method_table]
        raise NoApplicableMethodError(generic.name, args, kwargs, candidates=candidates)
    return no_applicable_method

def _raise_no_primary_method(generic):
    def no_primary_method(*args, **kwargs):
        raise NoPrimaryMethodError(generic.name, args, kwargs)
    return no_primary_method

_roles = ((), (BEFORE,), (AFTER,), (AROUND,))

def standard_method_combination(generic, methods):
    """Combine `methods` of `generic` using the standard method combination.

    `methods`: sequence of `Method`, the applicable ones, most specific first.

    Return value is the effective method, a callable taking the arguments of
    the call. Raise `UnsupportedQualifiersError` if a method has qualifiers
    other than the standard ones.
    """
    by_role = {role: [] for role in _roles}
    for method in methods:
        role = role_of(method.qualifiers)
        if role not in by_role:
            raise UnsupportedQualifiersError(generic.name, method.qualifiers)
        by_role[role].append(method)

    if not methods:
        return _raise_no_applicable_method(generic)
    primaries = by_role[()]
    if not primaries:
        return _raise_no_primary_method(generic)

    # Build from the inside out: the least specific method is the innermost link.
    effective = None
    for method in reversed(primaries):
        effective = _method_function(generic, method, effective)

    befores = [_method_function(generic, m, None) for m in by_role[(BEFORE,)]]
    afters = [_method_function(generic, m, None) for m in reversed(by_role[(AFTER,)])]
    if befores or afters:
        effective = _with_before_and_after(effective, befores, afters)

    for method in reversed(by_role[(AROUND,)]):
        effective = _method_function(generic, method, effective)
    return effective

combine_methods = _register_generic(GenericFunction("genfun.combination.combine_methods", ("generic", "methods"), doc="""
Return the effective method for calling `generic` when `methods` are applicable.

`methods` is a tuple of `Method`, most specific first. The default method uses
`standard_method_combination`. To customize the combination of one generic
function, add a method specialized on it::

    @augment(combine_methods)
    def combine_methods(generic: eql(my_generic), methods):
        ...

Effective methods are memoized; adding a method to `combine_methods` forgets
them all.
"""))

# --------------------------------------------------------------------------------

_under_construction = gensym("under construction")
_combined_methods = WeakKeyDictionary()  # generic -> {methods: effective method}

def build_combined_method(generic, methods):
    """Return the effective method for `methods` of `generic`, building it if needed.

    `methods`: tuple of `Method`, most specific first.

    If building the effective method needs that same effective method (via the
    dispatch of `combine_methods`, or of `generic` itself), raise
    `CyclicDefinitionError`.
    """
    if not methods:
        return standard_method_combination(generic, methods)
    memo = _combined_methods.get(generic)
    if memo is None:
        memo = _combined_methods.setdefault(generic, {})
    effective = memo.get(methods)
    if effective is _under_construction:
        raise CyclicDefinitionError(generic.name)
    if effective is None:
        memo[methods] = _under_construction
        try:
            if generic is combine_methods:  # `combine_methods` can't dispatch on itself to build itself
                effective = standard_method_combination(generic, methods)
            else:
                effective = combine_methods(generic, methods)
        except Exception:
            memo.pop(methods, None)
            raise
        memo[methods] = effective
        logger.debug("Built effective method for {} from {} methods".format(generic.name, len(methods)))
    return effective

def forget_combined_methods(generic=None):
    """Forget the memoized effective methods of `generic`, or of all generic functions if `None`."""
    if generic is None:
        _combined_methods.clear()
    else:
        _combined_methods.pop(generic, None)

def _init_module():  # called by `genfun.__init__`
    from .dispatch import define_method
    define_method(combine_methods, (), (GenericFunction,), False, standard_method_combination)
