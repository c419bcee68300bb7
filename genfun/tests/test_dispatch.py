# -*- coding: utf-8; -*-

from collections import abc
import math
import numbers
import threading
import typing

import pytest

from ..dispatch import (generic, defgeneric, augment, isgeneric,
                        define_generic, define_method, undefine_method, rebuild_generic,
                        find_method, list_methods, format_methods, generics_specializing_on)
from ..errors import NoApplicableMethodError, InvalidPrecedenceError
from ..model import find_generic
from ..specializers import eql, head, context

@generic
def zorblify(x: int, y: int):
    return 2 * x + y
@generic
def zorblify(x: str, y: int):  # noqa: F811, registered as a method of the same generic function.
    return "str, int"
@generic
def zorblify(x: str, y: float):  # noqa: F811
    return f"{x[::-1]} {y}"

def test_multiple_dispatch():
    assert isgeneric(zorblify)
    assert not isgeneric(math.sin)
    assert zorblify(17, 8) == 42
    assert zorblify("abc", 8) == "str, int"
    assert zorblify("abc", 3.14) == "cba 3.14"
    assert zorblify(True, 2) == 4  # bool is an int
    with pytest.raises(NoApplicableMethodError):
        zorblify(1.0, 2)
    with pytest.raises(TypeError):  # NoApplicableMethodError is also a TypeError
        zorblify(1, "no")

def test_no_applicable_method_error_details():
    with pytest.raises(NoApplicableMethodError) as excinfo:
        zorblify(1.0, 2)
    err = excinfo.value
    assert err.name == zorblify.name
    assert err.call_args == (1.0, 2)
    assert "zorblify (x: int, y: int)" in str(err)  # lists the candidates

def test_missing_dispatched_argument():
    with pytest.raises(NoApplicableMethodError):  # no method of zorblify takes just one argument
        zorblify(1)

@generic
def example(stop: int):
    return example(0, 1, stop)
@generic
def example(start: int, stop: int):  # noqa: F811
    return example(start, 1, stop)
@generic
def example(start: int, step: int, stop: int):  # noqa: F811
    return start, step, stop

@generic
def example2(start: int, step: int, stop: int):
    return start, step, stop
@generic
def example2(start: int, stop: int):  # noqa: F811
    return example2(start, 1, stop)
@generic
def example2(stop: int):  # noqa: F811
    return example2(0, 1, stop)

def test_methods_of_different_arity():
    assert example(5) == (0, 1, 5)
    assert example(2, 5) == (2, 1, 5)
    assert example(2, 3, 5) == (2, 3, 5)
    # The order of definition does not matter.
    assert example2(5) == (0, 1, 5)
    assert example2(2, 5) == (2, 1, 5)
    assert example2(2, 3, 5) == (2, 3, 5)
    with pytest.raises(NoApplicableMethodError):
        example()
    with pytest.raises(TypeError):  # dispatches on three arguments, then the method rejects the fourth
        example(1, 2, 3, 4)

def test_keyword_arguments():
    assert zorblify(x=17, y=8) == 42
    assert zorblify(17, y=8) == 42

@generic
def greet(name: str, greeting="hello"):
    return f"{greeting}, {name}"

def test_optional_parameters_are_not_dispatched():
    assert greet("world") == "hello, world"
    assert greet("world", greeting="hi") == "hi, world"
    assert greet("world", "hey") == "hey, world"

@generic
def kind(x: object):
    return "object"
@generic
def kind(x: numbers.Real):  # noqa: F811
    return "real"
@generic
def kind(x: int):  # noqa: F811
    return "int"
@generic
def kind(x: abc.Mapping):  # noqa: F811
    return "mapping"

def test_most_specific_method_wins():
    assert kind(3) == "int"
    assert kind(2.5) == "real"
    assert kind({}) == "mapping"
    assert kind("hello") == "object"
    assert kind(None) == "object"

@generic
def fact(n: eql(0)):
    return 1
@generic
def fact(n: int):  # noqa: F811
    return n * fact(n - 1)

@generic
def which(x: eql(1)):
    return "one"
@generic
def which(x: typing.Any):  # noqa: F811
    return "something else"

def test_eql():
    assert fact(0) == 1
    assert fact(5) == 120
    assert which(1) == "one"
    assert which(True) == "something else"  # same value, different type
    assert which(1.0) == "something else"
    assert which([1]) == "something else"  # unhashable values never match an eql specializer
    with pytest.raises(TypeError):
        eql([1])

@generic
def evaluate(expr: head("+")):
    return sum(evaluate(x) for x in expr[1:])
@generic
def evaluate(expr: head("*")):  # noqa: F811
    return math.prod(evaluate(x) for x in expr[1:])
@generic
def evaluate(expr: int):  # noqa: F811
    return expr

def test_head():
    assert evaluate(("+", 1, ["*", 2, 3])) == 7
    assert evaluate(["*"]) == 1
    with pytest.raises(NoApplicableMethodError):
        evaluate(("-", 3, 2))
    with pytest.raises(NoApplicableMethodError):
        evaluate(())

_settings = {"mode": "normal"}
current_mode = context(lambda: _settings["mode"], name="mode")

@generic
def render(x: int):
    return "normal"
@augment(render, context={current_mode: eql("fast")})
def render(x: int):  # noqa: F811
    return "fast"

def test_context():
    assert render(1) == "normal"
    _settings["mode"] = "fast"
    try:
        assert render(1) == "fast"
    finally:
        _settings["mode"] = "normal"
    assert render(1) == "normal"
    assert len(list_methods(render)) == 2

@defgeneric(precedence=["y", "x"])
def collide(x, y):
    """Collide two objects."""
    ...
@augment(collide)
def collide(x: int, y: typing.Any):  # noqa: F811
    return "x is an int"
@augment(collide)
def collide(x: typing.Any, y: int):  # noqa: F811
    return "y is an int"

@generic
def collide2(x: int, y: typing.Any):
    return "x is an int"
@generic
def collide2(x: typing.Any, y: int):  # noqa: F811
    return "y is an int"

def test_argument_precedence():
    assert collide.__doc__ == "Collide two objects."
    assert collide.precedence == ("y", "x")
    assert collide(1, 1) == "y is an int"
    assert collide(1, "a") == "x is an int"
    assert collide2(1, 1) == "x is an int"  # by default, the leftmost argument is the most important

def test_invalid_precedence():
    with pytest.raises(InvalidPrecedenceError):
        define_generic("genfun.tests.test_dispatch.bad_precedence", ["a", "b"], precedence=["a", "c"])
    with pytest.raises(InvalidPrecedenceError):
        define_generic("genfun.tests.test_dispatch.bad_precedence", ["a", "b"], precedence=["a", "a"])
    with pytest.raises(ValueError):  # also a ValueError
        define_generic("genfun.tests.test_dispatch.bad_precedence", ["a", "b"], precedence=["b", "c"])

class Counter:
    def __init__(self):
        self.n = 0

    @generic
    def add(self, x: int):
        self.n += x
        return self
    @generic
    def add(self, x: str):  # noqa: F811
        self.n += len(x)
        return self

def test_as_oop_method():
    c = Counter()
    assert c.add(3).add("ab").n == 5
    assert Counter.add is Counter.__dict__["add"]
    with pytest.raises(NoApplicableMethodError):
        c.add(2.0)

@generic
def tagged(x: int):
    return "int"
@generic
def tagged(x: str):  # noqa: F811
    return "str"

def test_dispatch_cache_reuse():
    rebuild_generic(tagged)  # start a fresh cache generation
    assert tagged.stats.hits == 0 and tagged.stats.misses == 0
    assert [tagged(1), tagged(2), tagged(3)] == ["int", "int", "int"]
    assert tagged.stats.misses == 1
    assert tagged.stats.hits == 2
    assert tagged("a") == "str"
    assert tagged.stats.misses == 2
    assert tagged(True) == "int"  # bool has a tag of its own
    assert tagged.stats.misses == 3

def test_redefinition_replaces_method_and_entry_point():
    @generic
    def g(x: int):
        return "first"
    old_entry_point = g.entry_point
    assert g(1) == "first"

    @generic
    def g(x: int):  # noqa: F811, same specializers and qualifiers: replaces the method
        return "second"
    assert len(list_methods(g)) == 1
    assert g(1) == "second"
    assert g.entry_point is not old_entry_point
    assert old_entry_point(1) == "first"  # an old entry point keeps its old definitions

def test_zero_dispatch():
    def hello(name="world"):
        return f"hello, {name}"
    g = define_method("genfun.tests.test_dispatch.hello", (), (), False, hello)
    assert find_generic("genfun.tests.test_dispatch.hello") is g
    assert g() == "hello, world"
    assert g.entry_point is hello  # after the first call, no dispatch layer at all
    assert g("you") == "hello, you"
    assert g.stats.hits == 0 and g.stats.misses == 0

    @generic
    def untyped(x, y):
        return x + y
    assert untyped(1, 2) == 3
    assert untyped("a", "b") == "ab"

def test_stale_zero_dispatch_entry_point():
    name = "genfun.tests.test_dispatch.stale"
    log = []
    g = define_method(name, (), (), False, lambda: log.append("primary") or "done")
    stale = g.entry_point  # not called yet; builds its effective method on the first call
    define_method(name, ":before", (), False, lambda: log.append("before"))
    fresh = g.entry_point
    assert fresh is not stale

    assert stale() == "done"  # an old entry point keeps its old definitions...
    assert log == ["primary"]
    assert g.entry_point is fresh  # ...and does not install them over the new ones
    log.clear()
    assert g() == "done"
    assert log == ["before", "primary"]
    assert g.entry_point is not fresh  # the current one did replace itself

def test_define_method_by_name():
    name = "genfun.tests.test_dispatch.by_name"
    g = define_generic(name, ["x"], doc="Defined by name.")
    define_method(name, (), [int], False, lambda x: "int")
    define_method(name, (), [str], False, lambda x: "str")
    assert g(1) == "int"
    assert g("a") == "str"
    assert g.__doc__ == "Defined by name."

def test_undefine_and_find():
    @generic
    def h(x: int):
        return "int"
    @generic
    def h(x: object):  # noqa: F811
        return "object"
    assert h(1) == "int"
    assert find_method(h, (), (int,)) is not None
    assert find_method(h, (), (str,)) is None

    undefine_method(h, (), (int,))
    assert h(1) == "object"
    assert find_method(h, (), (int,)) is None
    with pytest.raises(LookupError):
        undefine_method(h, (), (int,))

def test_introspection():
    text = format_methods(zorblify)
    assert text.startswith(f"Methods for generic function {zorblify.name}:")
    assert "zorblify (x: str, y: float)" in text
    assert zorblify in generics_specializing_on(float)
    assert zorblify not in generics_specializing_on(bytes)
    with pytest.raises(TypeError):
        list_methods(math.sin)

def test_concurrent_calls():
    errors = []
    def worker():
        try:
            for k in range(500):
                assert kind(k) == "int"
                assert kind(float(k)) == "real"
                assert zorblify(k, 1) == 2 * k + 1
        except Exception as err:  # pragma: no cover
            errors.append(err)
    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors
