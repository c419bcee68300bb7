# -*- coding: utf-8; -*-
"""Data model of generic functions: methods, generic function objects, and their registry.

This module only holds the data. The definition machinery that maintains it
lives in `genfun.dispatch`; the call-time machinery, in `genfun.cache` and
`genfun.combination`.
"""

__all__ = ["Method", "GenericFunction", "DispatchStats",
           "find_generic", "all_generics", "describe_method"]

from functools import update_wrapper
from types import MethodType
import threading
import typing

from .errors import NoApplicableMethodError
from .qualifiers import normalize_qualifiers
from .specializers import isuniversal

_generic_registry = {}
_generic_registry_lock = threading.Lock()

class Method:
    """One implementation of a generic function.

    `specializers`: sequence of specializers, one per dispatched positional
                    parameter, in declaration order. Trailing universal
                    specializers are dropped, so `(int, Any)` and `(int,)`
                    denote the same method.

    `qualifiers`: the method's qualifiers; see `genfun.qualifiers`.

    `uses_next_method`: bool. If `True`, `function` receives a next-method
                        continuation as its first argument, before the
                        arguments of the call.

    `function`: the callable implementing the method.

    `contexts`: sequence of `(context, specializer)` pairs; see
                `genfun.specializers.context`. Pairs with a universal
                specializer are dropped.

    Two methods with the same `key` are the same method as far as the method
    table is concerned; defining the second replaces the first.
    """
    __slots__ = ("specializers", "qualifiers", "uses_next_method", "function", "contexts", "key")

    def __init__(self, specializers, qualifiers, uses_next_method, function, contexts=()):
        specializers = list(specializers)
        while specializers and isuniversal(specializers[-1]):
            specializers.pop()
        self.specializers = tuple(specializers)
        self.qualifiers = normalize_qualifiers(qualifiers)
        self.uses_next_method = bool(uses_next_method)
        self.function = function
        self.contexts = {ctx: spec for ctx, spec in contexts if not isuniversal(spec)}
        self.key = (self.specializers, frozenset(self.contexts.items()), self.qualifiers)

    def specializer_at(self, dispatch_key):
        """Return this method's specializer for an argument position (int) or a context."""
        if isinstance(dispatch_key, int):
            if dispatch_key < len(self.specializers):
                return self.specializers[dispatch_key]
            return typing.Any
        return self.contexts.get(dispatch_key, typing.Any)

    def __repr__(self):
        qualifiers_str = "".join(f"{q} " for q in self.qualifiers)
        specializers_str = ", ".join(_format_specializer(s) for s in self.specializers)
        return f"<method {qualifiers_str}({specializers_str})>"

class DispatchStats:
    """Instrumentation counters of one dispatch cache generation.

    `hits`: how many tag lookups found an entry.
    `misses`: how many tag lookups had to resolve the applicable methods.
    """
    __slots__ = ("hits", "misses")

    def __init__(self):
        self.hits = 0
        self.misses = 0

    def __repr__(self):
        return f"<DispatchStats hits={self.hits} misses={self.misses}>"

class GenericFunction:
    """A generic function: a named callable dispatching to its methods.

    Create these with `genfun.dispatch.define_generic` or the decorators in
    `genfun.dispatch`, not directly.

    Attributes:

      `name`: str, the name under which this generic function is registered.
      `params`: tuple of str, names of the mandatory positional parameters.
      `precedence`: tuple of parameter names, most important first, or `None`.
      `method_table`: list of `Method`, in declaration order.
      `dispatches`: list of `(dispatch_key, generalizers)`, in the order the
                    dispatch keys are tested; the most important key is last.
      `entry_point`: the callable that currently implements this generic function.
      `stats`: `DispatchStats` of the current dispatch cache generation.

    Calling the generic function calls its *current* entry point. Every
    definition event installs a new one (see `genfun.dispatch.rebuild_generic`),
    so holding on to an old `entry_point` keeps using the old definitions.
    """
    def __init__(self, name, params=(), *, doc=None, wrapped=None):
        if wrapped is not None:
            update_wrapper(self, wrapped)
        else:
            self.__name__ = self.__qualname__ = name.rsplit(".", 1)[-1]
        if doc is not None:
            self.__doc__ = doc
        self.name = name
        self.params = tuple(params)
        self.precedence = None
        self.method_table = []
        self.dispatches = []
        self.stats = DispatchStats()
        self.entry_point = self._no_methods

    def _no_methods(self, *args, **kwargs):
        raise NoApplicableMethodError(self.name, args, kwargs)

    def __call__(self, *args, **kwargs):
        if kwargs and len(args) < len(self.params):
            args, kwargs = self._positionalize(args, kwargs)
        return self.entry_point(*args, **kwargs)

    def _positionalize(self, args, kwargs):
        """Move mandatory parameters passed by name into their positional slots."""
        args = list(args)
        kwargs = dict(kwargs)
        for name in self.params[len(args):]:
            if name not in kwargs:
                break
            args.append(kwargs.pop(name))
        return tuple(args), kwargs

    # Support use as an OOP method; `self` becomes the first argument, like for a function.
    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return MethodType(self, instance)

    def __repr__(self):
        return f"<generic function {self.name}>"

def _register_generic(generic):
    with _generic_registry_lock:
        _generic_registry[generic.name] = generic
    return generic

def find_generic(name):
    """Return the generic function registered under `name`, or `None`."""
    return _generic_registry.get(name, None)

def all_generics():
    """Return a list of all registered generic functions."""
    return list(_generic_registry.values())

def _format_specializer(specializer):
    if isuniversal(specializer):
        return "Any"
    if isinstance(specializer, type):
        return specializer.__qualname__
    return repr(specializer)

def describe_method(method, name=None):
    """Format, as a string, a human-readable description of `method`.

    `name`: the name of the generic function, used as the head of the description.

    The parameter names come from the method's function, when it can be inspected::

        area :before (s: shape) from shapes.py:42
    """
    function = method.function
    code = getattr(function, "__code__", None)
    if code is not None:
        argnames = list(code.co_varnames[:code.co_argcount])
        if method.uses_next_method:
            argnames = argnames[1:]
    else:
        argnames = []
    argnames += ["_"] * (len(method.specializers) - len(argnames))
    parts = [f"{argname}: {_format_specializer(s)}" for argname, s in zip(argnames, method.specializers)]
    parts += [f"&context {ctx.name}: {_format_specializer(s)}" for ctx, s in method.contexts.items()]
    head = name or getattr(function, "__qualname__", repr(function))
    qualifiers_str = "".join(f" {q}" for q in method.qualifiers)
    desc = f"{head}{qualifiers_str} ({', '.join(parts)})"
    if code is not None:
        desc += f" from {code.co_filename}:{code.co_firstlineno}"
    return desc
