# -*- coding: utf-8; -*-
"""The dispatch cache.

A generic function's entry point is a chain of *dispatchers*, one per dispatch
axis (an argument position, or a context). Each dispatcher computes the tag of
its axis, and looks it up in its private table. On a hit, it calls what it
finds: either the dispatcher of the next axis, or, after the last axis, the
effective method. On a miss, it filters the methods to those applicable at this
axis, ranks them, builds what comes next, stores it in the table, and calls it.

The most important axis is dispatched last, so its ranking decides the final
order of the methods; the earlier axes only break ties (the sort is stable).

The caches are pure derived state. They are never patched when a method
changes; `genfun.dispatch.rebuild_generic` starts a new cache generation and
installs a new entry point instead. Filling a cache is not locked: two threads
missing on the same tag compute the same thing, and the last write wins.
"""

__all__ = ["DispatchCache", "live_dispatches", "make_next_function"]

import logging
from operator import itemgetter
import typing

from .combination import build_combined_method
from .model import DispatchStats
from .qualifiers import gensym
from .registry import universal_generalizer
from .specializers import isuniversal

logger = logging.getLogger(__name__)

class DispatchCache:
    """One generation of the dispatch cache of a generic function.

    `next_functions`: memo of the dispatchers built in this generation, keyed by
                      `(remaining dispatches, methods)`, so that different tags
                      leading to the same method subset share a dispatcher.
    `stats`: `DispatchStats`, hit and miss counts of this generation.
    """
    __slots__ = ("generic", "next_functions", "stats")

    def __init__(self, generic):
        self.generic = generic
        self.next_functions = {}
        self.stats = DispatchStats()

def _skippable(dispatch, methods):
    """Return whether dispatching on `dispatch` cannot change the method list."""
    key, generalizers = dispatch
    if generalizers == (universal_generalizer,):
        return True
    return all(isuniversal(m.specializer_at(key)) for m in methods)

def live_dispatches(dispatches, methods):
    """Drop the leading dispatches that need no dispatching for `methods`."""
    while dispatches and _skippable(dispatches[0], methods):
        dispatches = dispatches[1:]
    return dispatches

def make_next_function(generic, dispatches, methods, cache):
    """Return the callable that continues the dispatch of a call.

    `dispatches`: tuple of `(dispatch_key, generalizers)` still to dispatch on.
    `methods`: tuple of `Method` still applicable, in order of specificity so far.
    `cache`: the `DispatchCache` of the current generation.

    When nothing remains to dispatch on, this is the effective method.
    """
    dispatches = live_dispatches(dispatches, methods)
    if not dispatches or not methods:
        return build_combined_method(generic, methods)
    memo_key = (dispatches, methods)
    try:
        return cache.next_functions[memo_key]
    except KeyError:
        pass
    (key, generalizers), *rest = dispatches
    factory = get_dispatcher_factory(key, generalizers)
    dispatcher = cache.next_functions[memo_key] = factory(generic, tuple(rest), methods, cache)
    return dispatcher

# --------------------------------------------------------------------------------

# (dispatch_key, generalizers) -> factory. Shared by all generic functions.
_dispatcher_factories = {}

# Tag of a positional argument the call does not have. Only `typing.Any` accepts
# it, so methods with fewer parameters can still apply to a shorter call.
_missing = gensym("missing argument")

def _make_tag_function(key, taggers):
    """Return a function `args -> tag` for the axis `key`."""
    if isinstance(key, int):
        def value_of(args):
            return args[key]
    else:
        getter = key.getter
        def value_of(args):
            return getter()

    if len(taggers) == 1:
        tagger, = taggers
        def tag_of(args):
            return tagger(value_of(args))
    elif len(taggers) == 2:
        tagger1, tagger2 = taggers
        def tag_of(args):
            x = value_of(args)
            return (tagger1(x), tagger2(x))
    else:
        def tag_of(args):
            x = value_of(args)
            return tuple(tagger(x) for tagger in taggers)

    if isinstance(key, int):
        tag_of_present = tag_of
        def tag_of(args):
            if len(args) <= key:
                return _missing
            return tag_of_present(args)
    return tag_of

def get_dispatcher_factory(key, generalizers):
    """Return the dispatcher factory for axis `key` with `generalizers`.

    The factory is `(generic, remaining dispatches, methods, cache) -> dispatcher`.
    Each dispatcher it makes has a table of its own.
    """
    factory_key = (key, generalizers)
    try:
        return _dispatcher_factories[factory_key]
    except KeyError:
        pass

    active = [g for g in generalizers if g is not universal_generalizer]
    taggers = tuple(g.tagger for g in active)
    listers = tuple(g.specializers for g in active)
    tag_of = _make_tag_function(key, taggers)
    single = len(taggers) == 1

    def factory(generic, dispatches_left, methods, cache):
        table = {}
        stats = cache.stats

        def dispatcher(*args, **kwargs):
            tag = tag_of(args)
            try:
                target = table[tag]
            except KeyError:
                stats.misses += 1
                tags = (tag,) if single and tag is not _missing else tag
                target = table[tag] = _cache_miss(generic, key, listers, tags,
                                                  dispatches_left, methods, cache)
            else:
                stats.hits += 1
            return target(*args, **kwargs)
        return dispatcher

    _dispatcher_factories[factory_key] = factory
    return factory

def _cache_miss(generic, key, listers, tags, dispatches_left, methods, cache):
    """Filter and rank `methods` for `tags` on axis `key`, and build what comes next."""
    specializers = []
    if tags is not _missing:
        for lister, tag in zip(listers, tags):
            if tag is not None:
                specializers.extend(lister(tag))
    specializers.append(typing.Any)

    ranked = []
    for method in methods:
        # Membership, not equality: a value may satisfy several specializers, at different ranks.
        try:
            rank = specializers.index(method.specializer_at(key))
        except ValueError:
            continue
        ranked.append((rank, method))
    ranked.sort(key=itemgetter(0))
    applicable = tuple(method for rank, method in ranked)
    logger.debug("Dispatch cache miss in {} on {}: tags {}, {} of {} methods applicable".format(
                 generic.name, key, tags, len(applicable), len(methods)))
    return make_next_function(generic, dispatches_left, applicable, cache)
