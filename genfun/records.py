# -*- coding: utf-8; -*-
"""Nominal record types with single-parent inheritance.

A record type is a lightweight structured type, like a `defstruct` in Lisp::

    shape = defrecord("shape")
    circle = defrecord("circle", ["r"], parent=shape)
    c = circle(r=2)
    assert c.r == 2
    assert isinstance(c, shape)

Record types are real Python classes (made by the metaclass `RecordType`),
but their inheritance is restricted to a single parent chain. This makes their
specificity ordering a simple list, which the record generalizer uses for
dispatching (see `genfun.registry`).

Record types are registered by name, so a parent can also be given by name.
Redefining a record type with the same name replaces the registration; existing
instances keep their old type.
"""

__all__ = ["RecordType", "defrecord", "isrecord", "isrecordtype",
           "find_record", "record_ancestors", "record_fields"]

import threading

_record_registry = {}
_record_registry_lock = threading.Lock()

class RecordType(type):
    """Metaclass of record types.

    Each record type has the attributes:

      `__record_name__`: str, the name it was registered under.
      `__record_parent__`: the parent record type, or `None`.
      `__record_fields__`: tuple of all field names, inherited ones first.
    """
    def __repr__(cls):
        return f"<record type {cls.__record_name__}>"

class _RecordBase:
    __slots__ = ()

    def __init__(self, *args, **kwargs):
        fields = type(self).__record_fields__
        if len(args) > len(fields):
            raise TypeError(f"{type(self).__record_name__}: expected at most {len(fields)} positional arguments, got {len(args)}")
        values = dict(zip(fields, args))
        for k, v in kwargs.items():
            if k not in fields:
                raise TypeError(f"{type(self).__record_name__}: unknown field {repr(k)}")
            if k in values:
                raise TypeError(f"{type(self).__record_name__}: got multiple values for field {repr(k)}")
            values[k] = v
        for k in fields:  # unset fields default to None, like in a Lisp struct
            setattr(self, k, values.get(k, None))

    def __repr__(self):
        fields_str = ", ".join(f"{k}={repr(getattr(self, k))}" for k in type(self).__record_fields__)
        return f"{type(self).__record_name__}({fields_str})"

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return all(getattr(self, k) == getattr(other, k) for k in type(self).__record_fields__)

    __hash__ = None  # mutable; compared by contents

def defrecord(name, fields=(), *, parent=None, doc=None):
    """Define a record type, and register it under `name`.

    `name`: str, the name of the record type.

    `fields`: iterable of str, the names of the fields *added* by this type.
              The fields of the parent come first, and are inherited.

    `parent`: the parent record type, either as a record type or as the name
              of a registered one. `None` for a root type.

    `doc`: optional docstring for the new type.

    Return value is the new record type. Instances are created by calling it,
    with fields given positionally (in `__record_fields__` order) or by name.
    """
    if isinstance(parent, str):
        parent = find_record(parent)
    if parent is not None and not isrecordtype(parent):
        raise TypeError(f"defrecord: parent of {repr(name)} must be a record type, got {repr(parent)}")
    own_fields = tuple(fields)
    inherited_fields = parent.__record_fields__ if parent is not None else ()
    clashes = [k for k in own_fields if k in inherited_fields]
    if clashes or len(set(own_fields)) != len(own_fields):
        raise TypeError(f"defrecord: duplicate field names in {repr(name)}: {list(own_fields)} (inherited: {list(inherited_fields)})")
    namespace = {"__slots__": own_fields,
                 "__doc__": doc,
                 "__record_name__": name,
                 "__record_parent__": parent,
                 "__record_fields__": inherited_fields + own_fields}
    base = parent if parent is not None else _RecordBase
    cls = RecordType(name, (base,), namespace)
    with _record_registry_lock:
        _record_registry[name] = cls
    return cls

def isrecord(x):
    """Return whether `x` is an instance of a record type."""
    return isinstance(type(x), RecordType)

def isrecordtype(cls):
    """Return whether `cls` is a record type."""
    return isinstance(cls, RecordType)

def find_record(name):
    """Return the record type registered under `name`. Raise `LookupError` if there is none."""
    try:
        return _record_registry[name]
    except KeyError:
        raise LookupError(f"No record type named {repr(name)}") from None

def record_ancestors(cls):
    """Return the parent chain of record type `cls`, as a list, `cls` itself first."""
    out = []
    while cls is not None:
        out.append(cls)
        cls = cls.__record_parent__
    return out

def record_fields(cls_or_instance):
    """Return the field names of a record type (or of the type of a record instance)."""
    cls = cls_or_instance if isrecordtype(cls_or_instance) else type(cls_or_instance)
    return cls.__record_fields__
