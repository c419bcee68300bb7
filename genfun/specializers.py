# -*- coding: utf-8; -*-
"""Specializer forms.

A *specializer* is a constraint on one argument (or one context value) of a
method. Specializers are plain hashable objects compared by `==`, so that two
separately written `eql(3)` denote the same specializer.

The built-in kinds:

  - `typing.Any`: the universal specializer; matches anything. A method
    parameter without an annotation is specialized on this.
  - `eql(value)`: matches values of the same type that compare equal to `value`.
  - `head(literal)`: matches a `list` or `tuple` whose first element is `literal`.
  - a record type (see `genfun.records`): matches its instances, and instances
    of its descendants.
  - any other Python class: matches its instances, ranked by the MRO.

New kinds can be added; see `genfun.registry`.

Besides arguments, a method can specialize on a *context*: a value computed at
call time by a zero-argument callable. See `context`.
"""

__all__ = ["eql", "head", "context", "isuniversal"]

import typing

def isuniversal(specializer):
    """Return whether `specializer` is the universal specializer, `typing.Any`."""
    return specializer is typing.Any

class _ValueSpecializer:
    """Base for specializers that wrap one hashable value.

    Two instances are equal when they have the same class, and their values
    have the same type and compare equal. So `eql(1)`, `eql(1.0)` and
    `eql(True)` are three different specializers.
    """
    __slots__ = ("value",)

    def __init__(self, value):
        try:
            hash(value)
        except TypeError:
            raise TypeError(f"{type(self).__name__}: value must be hashable, got {repr(value)}") from None
        self.value = value

    def _key(self):
        return (type(self.value), self.value)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()
    def __ne__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() != other._key()
    def __hash__(self):
        return hash((type(self), self._key()))

    def __repr__(self):
        return f"{type(self).__name__}({repr(self.value)})"

class eql(_ValueSpecializer):
    """Specializer: match one particular value.

    Example::

        @generic
        def fact(n: eql(0)):
            return 1
        @generic
        def fact(n: int):
            return n * fact(n - 1)
    """

class head(_ValueSpecializer):
    """Specializer: match a list or tuple whose first element is the given literal.

    Handy for dispatching on tagged data::

        @generic
        def evaluate(expr: head("+")):
            return sum(evaluate(x) for x in expr[1:])
    """

class context:
    """Identify a context value, on which methods may specialize.

    `getter`: zero-argument callable, evaluated at call time to obtain the
              context value.

    `name`: optional human-readable name, for introspection. Defaults to the
            name of `getter`.

    Two `context` objects are the same context when they have the same `getter`,
    so the idiomatic way is to make one and reuse it::

        current_mode = context(lambda: settings.mode, name="mode")

        @augment(render, context={current_mode: eql("fast")})
        def render(scene: Any):
            ...

    Contexts are dispatched before the arguments, i.e. they have the lowest
    precedence.
    """
    __slots__ = ("getter", "name")

    def __init__(self, getter, *, name=None):
        if not callable(getter):
            raise TypeError(f"context: expected a callable, got {repr(getter)}")
        self.getter = getter
        self.name = name or getattr(getter, "__name__", repr(getter))

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.getter is other.getter
    def __hash__(self):
        return hash((context, id(self.getter)))

    def __repr__(self):
        return f"context({self.name})"
