# -*- coding: utf-8; -*-
"""Method qualifiers, represented as lispy symbols.

A method's *qualifiers* decide its role in the method combination. The standard
method combination understands:

  - no qualifier: a *primary* method,
  - `:before`, `:after`, `:around`,

each optionally accompanied by any number of `:extra <tag>` pairs. The `:extra`
tags take no part in the combination; they only make the method's identity
distinct, so that several methods with the same specializers and role can
coexist (see `genfun.dispatch.define_method`).

Qualifiers are interned symbols, so they are compared by identity::

    assert sym(":before") is BEFORE

Anywhere a qualifier is accepted, a string starting with a colon works too;
see `normalize_qualifiers`.

The symbols are the lispy symbols of `unpythonic.symbol` (pickle-aware,
thread-safe interning), reproduced here so that `genfun` has no run-time
dependencies. See:
    https://stackoverflow.com/questions/8846628/what-exactly-is-a-symbol-in-lisp-scheme
    https://www.cs.cmu.edu/Groups/AI/html/cltl/clm/node27.html
"""

__all__ = ["sym", "gensym",
           "BEFORE", "AFTER", "AROUND", "EXTRA",
           "normalize_qualifiers", "role_of"]

from weakref import WeakValueDictionary
import threading

_symbols = WeakValueDictionary()  # registry
_symbols_update_lock = threading.Lock()

class sym:
    """A lispy symbol: a human-readable, process-wide unique marker.

    name: str
        The human-readable name of the symbol.

    intern: bool
        By default, symbols are *interned*: the same `name` always gives the
        same instance, also across pickling.

        An *uninterned* symbol is unique to the constructor call that made it.
        It works as a sentinel value with a human-readable label. See `gensym`.
    """
    def __new__(cls, name, intern=True):  # This covers unpickling, too.
        if not intern:
            return super().__new__(cls)
        try:  # EAFP to eliminate TOCTTOU.
            return _symbols[name]
        except KeyError:
            with _symbols_update_lock:
                if name not in _symbols:
                    # Strong reference keeps the new instance alive until construction is done.
                    instance = _symbols[name] = super().__new__(cls)
                else:
                    instance = _symbols[name]
            return instance

    def __init__(self, name, intern=True):
        self.name = name
        self.interned = intern

    def __getnewargs__(self):
        return (self.name, self.interned)

    def __str__(self):
        if self.interned:
            return self.name
        return repr(self)
    def __repr__(self):
        if self.interned:
            return f'sym("{self.name}")'
        return f'<uninterned symbol "{self.name}" at 0x{id(self):x}>'

def gensym(name):
    """Create an uninterned symbol, for use as a sentinel value."""
    return sym(name, intern=False)

BEFORE = sym(":before")
AFTER = sym(":after")
AROUND = sym(":around")
EXTRA = sym(":extra")

def normalize_qualifiers(qualifiers):
    """Return `qualifiers` as a tuple of symbols, in a form usable as part of a method key.

    `qualifiers`: a single qualifier or an iterable of them. `None` means no
                  qualifiers (a primary method).

    Strings starting with a colon become interned symbols. The item following
    an `:extra` is its tag, and is kept as-is (it may be any hashable)::

        normalize_qualifiers(":before")                   # -> (BEFORE,)
        normalize_qualifiers([":extra", "X", ":after"])   # -> (EXTRA, "X", AFTER)

    Any other qualifier is kept as-is, too. Whether it means anything is up
    to the method combination, which reports unsupported qualifiers when it
    builds an effective method.
    """
    if qualifiers is None:
        return ()
    if isinstance(qualifiers, (str, sym)):
        qualifiers = (qualifiers,)
    out = []
    expect_tag = False
    for q in qualifiers:
        if expect_tag:
            out.append(q)
            expect_tag = False
            continue
        if isinstance(q, str) and q.startswith(":"):
            q = sym(q)
        out.append(q)
        expect_tag = q is EXTRA
    if expect_tag:
        raise ValueError(f"Qualifier list {list(qualifiers)} ends with :extra; expected a tag after it.")
    return tuple(out)

def role_of(qualifiers):
    """Return `qualifiers` without the `:extra <tag>` pairs.

    The result is what determines the method's role in the standard method
    combination: `()` for a primary method, `(BEFORE,)` etc. for the others.
    """
    out = []
    it = iter(qualifiers)
    for q in it:
        if q is EXTRA:
            next(it, None)  # skip the tag
            continue
        out.append(q)
    return tuple(out)
