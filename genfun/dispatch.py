# -*- coding: utf-8; -*-
"""A multiple-dispatch system with method combination (a.k.a. CLOS-style generic functions).

Terminology:

  - The function that supports multiple call signatures is a *generic function*.
  - Its individual implementations are *methods*.
  - A method constrains its arguments with *specializers*, and declares its
    role in the method combination with *qualifiers*.

When a generic function is called, all methods whose specializers accept the
arguments are *applicable*. They are sorted most specific first, and combined
into one *effective method* (see `genfun.combination`), which is then called.
The selection is cached by argument *tags* (see `genfun.registry` and
`genfun.cache`), so the next call with similar arguments skips it.

Somewhat like `functools.singledispatch`, but for multiple dispatch, with
`:before`, `:after` and `:around` methods, and next-method chaining.

Quick tour::

    from genfun import generic, before, defrecord

    shape = defrecord("shape")
    circle = defrecord("circle", ["r"], parent=shape)

    @generic
    def area(s: circle):
        return math.pi * s.r**2

    @before(area)
    def area(s: shape):
        print("computing area")

    area(circle(r=2))  # prints "computing area", returns 4π

**The most specific method wins**, as in CLOS and Julia. Specificity is decided
argument by argument, the first argument being the most important, unless
the generic function declares another argument precedence order.

A method calls the next most specific method through a next-method continuation,
which it receives as its first argument, if that parameter is named one of
`next_method_parameter_names`::

    @generic
    def area(call_next_method, s: circle):
        return round(call_next_method(), 2)
"""

__all__ = ["isgeneric", "generic", "defgeneric", "augment", "before", "after", "around",
           "define_generic", "define_method", "undefine_method", "rebuild_generic",
           "find_method", "list_methods", "format_methods", "methods", "generics_specializing_on"]

import inspect
import logging
import threading
import typing

from .cache import DispatchCache, live_dispatches, make_next_function
from .combination import build_combined_method, combine_methods, forget_combined_methods
from .errors import InvalidPrecedenceError
from .model import (GenericFunction, Method, _register_generic,
                    all_generics, describe_method, find_generic)
from .qualifiers import AFTER, AROUND, BEFORE, normalize_qualifiers
from .registry import generalizers_for, universal_generalizer

logger = logging.getLogger(__name__)

# Definition events are serialized. Re-entrant, because defining a method may
# call generic functions (e.g. `generalizers`) whose own definitions are extended.
_definition_lock = threading.RLock()

# Stealthily public (with the usual public-API guarantees). When the first
# positional parameter of a method function has one of these names, the method
# receives its next-method continuation in that parameter.
next_method_parameter_names = ["call_next_method", "next_method"]

def isgeneric(f):
    """Return whether `f` is a generic function."""
    return isinstance(f, GenericFunction)

def _resolve(generic_or_name):
    if isinstance(generic_or_name, GenericFunction):
        return generic_or_name
    return find_generic(generic_or_name)

# --------------------------------------------------------------------------------
# Definition interface

def define_generic(name, params=None, *, doc=None, precedence=None, wrapped=None):
    """Define the generic function `name`, or update its options if it exists.

    `name`: str, the name to register the generic function under.

    `params`: sequence of str, the names of its mandatory positional parameters.
              Used for argument precedence, and for moving arguments passed by
              name into their positional slots. If `None`, keep the current
              ones (initially empty).

    `doc`: optional docstring.

    `precedence`: optional sequence of parameter names, most important first.
                  By default the leftmost parameter is the most important.
                  Each name must be a mandatory parameter, at most once;
                  otherwise `InvalidPrecedenceError` is raised.

    `wrapped`: optional function, whose metadata (`__name__`, `__doc__`, ...)
               the generic function takes over.

    Return value is the generic function.
    """
    with _definition_lock:
        generic = find_generic(name)
        if generic is None:
            generic = _register_generic(GenericFunction(name, params or (), doc=doc, wrapped=wrapped))
            logger.info("Defined generic function {}".format(name))
        else:
            if params is not None:
                generic.params = tuple(params)
            if doc is not None:
                generic.__doc__ = doc
        if precedence is not None:
            precedence = tuple(precedence)
            if len(set(precedence)) != len(precedence) or not all(p in generic.params for p in precedence):
                raise InvalidPrecedenceError(name, precedence, generic.params)
            generic.precedence = precedence
        _sort_dispatches(generic)
        rebuild_generic(generic)
        return generic

def define_method(name, qualifiers, specializers, uses_next_method, function, *, contexts=()):
    """Define a method on the generic function `name`, creating the generic function if needed.

    `name`: str, or the generic function itself.

    `qualifiers`: the method's qualifiers; see `genfun.qualifiers`. Use `()` for
                  a primary method. The qualifiers are checked only when the
                  method combination uses the method.

    `specializers`: sequence, the specializer of each mandatory positional
                    parameter, in order. Use `typing.Any` for "anything".

    `uses_next_method`: bool. If true, `function` receives a next-method
                        continuation as its first argument.

    `function`: the callable implementing the method.

    `contexts`: sequence of `(context, specializer)` pairs; see
                `genfun.specializers.context`.

    If the generic function already has a method with the same specializers,
    contexts and qualifiers (including `:extra` tags), it is replaced.
    Otherwise the new method is added.

    Return value is the generic function.
    """
    with _definition_lock:
        generic = _resolve(name)
        if generic is None:
            generic = define_generic(name, _parameter_names(function, uses_next_method), wrapped=function)
        method = Method(specializers, qualifiers, uses_next_method, function, contexts)

        # Resolve all generalizers first; an unknown specializer must leave the generic function untouched.
        axes = [(position, generalizers_for(s)) for position, s in enumerate(method.specializers)]
        axes += [(ctx, generalizers_for(s)) for ctx, s in method.contexts.items()]
        for key, gens in axes:
            _add_dispatch(generic, key, gens)
        _sort_dispatches(generic)

        for i, existing in enumerate(generic.method_table):
            if existing.key == method.key:
                generic.method_table[i] = method
                logger.info("Replaced method {}".format(describe_method(method, generic.name)))
                break
        else:
            generic.method_table.append(method)
            logger.info("Added method {}".format(describe_method(method, generic.name)))

        if generic is combine_methods:
            _rebuild_all()
        else:
            rebuild_generic(generic)
        return generic

def undefine_method(name, qualifiers=(), specializers=(), *, contexts=()):
    """Remove a method from the generic function `name`.

    The method is identified like in `define_method`. Raise `LookupError`
    if there is no such method.

    Return value is the generic function.
    """
    with _definition_lock:
        generic = _resolve(name)
        method = find_method(generic, qualifiers, specializers, contexts=contexts) if generic else None
        if method is None:
            raise LookupError(f"{name}: no method with qualifiers {list(normalize_qualifiers(qualifiers))} and specializers {list(specializers)}")
        generic.method_table.remove(method)
        logger.info("Removed method {}".format(describe_method(method, generic.name)))
        if generic is combine_methods:
            _rebuild_all()
        else:
            rebuild_generic(generic)
        return generic

def rebuild_generic(generic):
    """Install a fresh entry point for `generic`, reflecting its current methods.

    This is the only way a new set of definitions reaches an entry point. (The
    entry point of a generic function that needs no dispatching replaces itself
    with its effective method on the first call, under the definition lock.)
    The new entry point starts with an empty dispatch cache; the old one, and
    its cache, keep working for whoever still holds a reference to them.
    """
    with _definition_lock:
        methods = tuple(generic.method_table)
        dispatches = tuple(generic.dispatches)
        forget_combined_methods(generic)
        cache = DispatchCache(generic)
        if live_dispatches(dispatches, methods) and methods:
            entry_point = make_next_function(generic, dispatches, methods, cache)
        else:
            entry_point = _direct_entry_point(generic, methods)
        generic.stats = cache.stats
        generic.entry_point = entry_point
        logger.debug("Rebuilt entry point of {} ({} methods, {} dispatch axes)".format(
                     generic.name, len(methods), len(dispatches)))

def _direct_entry_point(generic, methods):
    """Entry point for a generic function that needs no dispatching.

    The effective method is built on the first call, and then installed as the
    entry point itself, unless a definition event has installed a newer entry
    point meanwhile.
    """
    def build_and_call(*args, **kwargs):
        effective = build_combined_method(generic, methods)
        with _definition_lock:
            if generic.entry_point is build_and_call:
                generic.entry_point = effective
        return effective(*args, **kwargs)
    return build_and_call

def _rebuild_all():
    forget_combined_methods()
    for generic in all_generics():
        rebuild_generic(generic)

def _add_dispatch(generic, key, generalizers):
    """Merge `generalizers` into the dispatch axis `key` of `generic`, creating the axis if needed."""
    for i, (k, existing) in enumerate(generic.dispatches):
        if k == key:
            break
    else:
        i, existing = 0, (universal_generalizer,)
        generic.dispatches.insert(0, (key, existing))
    merged = list(existing)
    for g in generalizers:
        if g not in merged:
            merged.append(g)
    merged.sort(key=lambda g: g.priority, reverse=True)  # stable
    generic.dispatches[i] = (key, tuple(merged))

def _sort_dispatches(generic):
    """Order the dispatch axes least important first.

    Contexts are the least important. The positional axes follow, the leftmost
    one the most important, except that the parameters named in the declared
    argument precedence are more important than the others, in the declared order.
    """
    precedence = generic.precedence or ()
    params = generic.params
    def importance(dispatch):
        key, _ = dispatch
        if not isinstance(key, int):
            return (0, 0)
        if key < len(params) and params[key] in precedence:
            return (2, len(precedence) - precedence.index(params[key]))
        return (1, -key)
    generic.dispatches.sort(key=importance)

# --------------------------------------------------------------------------------
# Decorators

_positional_kinds = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)

def _analyze(function):
    """Return `(uses_next_method, parameter_names, specializers)` for a method function.

    The dispatched parameters are the mandatory positional ones. Their
    specializers come from their annotations; no annotation means `typing.Any`.
    """
    parameters = list(inspect.signature(function, eval_str=True).parameters.values())
    uses_next_method = bool(parameters and parameters[0].name in next_method_parameter_names and
                            parameters[0].kind in _positional_kinds)
    if uses_next_method:
        parameters = parameters[1:]
    mandatory = [p for p in parameters
                 if p.kind in _positional_kinds and p.default is inspect.Parameter.empty]
    names = [p.name for p in mandatory]
    specializers = [typing.Any if p.annotation is inspect.Parameter.empty else p.annotation
                    for p in mandatory]
    return uses_next_method, names, specializers

def _parameter_names(function, uses_next_method):
    try:
        parameters = list(inspect.signature(function).parameters.values())
    except (TypeError, ValueError):  # not inspectable, e.g. some builtins
        return ()
    if uses_next_method:
        parameters = parameters[1:]
    return tuple(p.name for p in parameters
                 if p.kind in _positional_kinds and p.default is inspect.Parameter.empty)

def _function_fullname(f):
    """Return the full name of the callable `f`, including also its module name."""
    if not f.__module__:
        return f.__qualname__
    return f"{f.__module__}.{f.__qualname__}"

def generic(f):
    """Decorator. Make `f` a method of the generic function of the same name.

    The first definition with a given name creates the generic function (like
    in Julia); every definition, including the first one, becomes a primary
    method of it. The return value is the generic function.

    The name is the *fullname* of `f`, "{f.__module__}.{f.__qualname__}", so
    definitions with the same name in the same lexical scope go to the same
    generic function::

        @generic
        def describe(x: int):
            return "int"
        @generic
        def describe(x: str):  # noqa: F811, registered as a method of the same generic function.
            return "str"

    The specializers come from the annotations of the mandatory positional
    parameters; a parameter without an annotation accepts anything. To use the
    next method, name the first parameter `call_next_method`; it then receives
    the next-method continuation, and takes no part in dispatching.

    To add methods from elsewhere, or methods with qualifiers, see `augment`.
    """
    with _definition_lock:
        uses_next_method, names, specializers = _analyze(f)
        fullname = _function_fullname(f)
        target = find_generic(fullname)
        if target is None:
            target = define_generic(fullname, names, wrapped=f)
        return define_method(target, (), specializers, uses_next_method, f)

def defgeneric(f=None, *, precedence=None, name=None):
    """Decorator. Declare a generic function, without defining any methods.

    The decorated function supplies the parameter names and the docstring;
    its body is never run. Use `...` as the body::

        @defgeneric(precedence=["y", "x"])
        def collide(x, y):
            '''Collide two objects.'''
            ...

    `precedence`: optional argument precedence order; see `define_generic`.
    `name`: optional name to register under, instead of the fullname of the function.

    Can be used with or without arguments. Return value is the generic function.
    """
    def declare(f):
        _, names, _ = _analyze(f)
        return define_generic(name or _function_fullname(f), names,
                              doc=f.__doc__, precedence=precedence, wrapped=f)
    if f is None:
        return declare
    return declare(f)

def augment(target, *qualifiers, context=None):
    """Parametric decorator. Add a method to the generic function `target`.

    Like `@generic`, but the generic function is given explicitly, so a method
    can be added to a generic function defined elsewhere. Also, qualifiers can
    be given::

        @augment(area, ":before")
        def area(s: shape):
            log.append(s)

        @augment(area, ":before", ":extra", "audit")  # a second :before method on `shape`
        def area(s: shape):
            audit.append(s)

    `context`: optional dict `{context: specializer}`, to specialize also on
               context values; see `genfun.specializers.context`.

    The return value of the decorator is the generic function.

    **CAUTION**: Beware of type piracy. Add methods to a generic function you
    don't own only if at least one specializer is of a type you own.
    """
    if not isgeneric(target):
        raise TypeError(f"{target!r} is not a generic function, cannot add methods to it.")
    contexts = tuple(context.items()) if context else ()
    def register(f):
        uses_next_method, _, specializers = _analyze(f)
        return define_method(target, qualifiers, specializers, uses_next_method, f, contexts=contexts)
    return register

def before(target, *extra, context=None):
    """Parametric decorator. Add a `:before` method to `target`. See `augment`."""
    return augment(target, BEFORE, *extra, context=context)

def after(target, *extra, context=None):
    """Parametric decorator. Add an `:after` method to `target`. See `augment`."""
    return augment(target, AFTER, *extra, context=context)

def around(target, *extra, context=None):
    """Parametric decorator. Add an `:around` method to `target`. See `augment`."""
    return augment(target, AROUND, *extra, context=context)

# --------------------------------------------------------------------------------
# Introspection

def find_method(generic, qualifiers=(), specializers=(), *, contexts=()):
    """Return the method of `generic` with the given qualifiers and specializers, or `None`."""
    generic = _resolve(generic)
    if generic is None:
        return None
    key = Method(specializers, qualifiers, False, None, contexts).key
    for method in generic.method_table:
        if method.key == key:
            return method
    return None

def list_methods(f):
    """Return a list of the methods currently defined on the generic function `f`, in definition order."""
    if not isgeneric(f):
        raise TypeError(f"{f!r} is not a generic function, it does not have methods.")
    return list(f.method_table)

def format_methods(f):
    """Format, as a string, a human-readable list of the methods of the generic function `f`."""
    methods_list = [f"  {describe_method(m, f.__name__)}" for m in list_methods(f)]
    methods_str = "\n".join(methods_list) if methods_list else "  <no methods defined>"
    return f"Methods for generic function {f.name}:\n{methods_str}"

def methods(f):
    """Print, to stdout, a human-readable list of the methods of the generic function `f`.

    For introspection in the REPL. Like the `methods` function of Julia.
    """
    print(format_methods(f))

def generics_specializing_on(specializer):
    """Return the generic functions that have a method specialized on `specializer`."""
    out = []
    for g in all_generics():
        if any(specializer in m.specializers or specializer in m.contexts.values()
               for m in g.method_table):
            out.append(g)
    return out
