# -*- coding: utf-8; -*-
"""Record types, and dispatching on them."""

import pytest

from ..dispatch import generic
from ..records import (defrecord, isrecord, isrecordtype, find_record,
                       record_ancestors, record_fields)

animal = defrecord("test_records.animal", ["name"])
dog = defrecord("test_records.dog", ["breed"], parent=animal)
puppy = defrecord("test_records.puppy", ["age"], parent="test_records.dog")
cat = defrecord("test_records.cat", parent=animal, doc="A cat.")

def test_construction():
    d = dog("Rex", "collie")
    assert d.name == "Rex"
    assert d.breed == "collie"
    assert dog(breed="pug").name is None  # unset fields default to None
    assert puppy("Rex", "collie", 1).age == 1
    assert record_fields(puppy) == ("name", "breed", "age")
    assert record_fields(d) == ("name", "breed")
    assert cat.__doc__ == "A cat."

def test_construction_errors():
    with pytest.raises(TypeError):
        dog("Rex", "collie", "extra")
    with pytest.raises(TypeError):
        dog(color="brown")
    with pytest.raises(TypeError):
        dog("Rex", name="Max")

def test_equality_and_repr():
    assert dog("Rex", "collie") == dog(name="Rex", breed="collie")
    assert dog("Rex", "collie") != dog("Max", "collie")
    assert dog("Rex") != animal("Rex")  # different types
    assert repr(dog("Rex", "collie")) == "test_records.dog(name='Rex', breed='collie')"
    with pytest.raises(TypeError):
        hash(dog("Rex"))

def test_inheritance():
    p = puppy("Rex")
    assert isinstance(p, dog)
    assert isinstance(p, animal)
    assert not isinstance(p, cat)
    assert isrecord(p)
    assert not isrecord(42)
    assert isrecordtype(puppy)
    assert not isrecordtype(int)
    assert record_ancestors(puppy) == [puppy, dog, animal]

def test_registry():
    assert find_record("test_records.dog") is dog
    with pytest.raises(LookupError):
        find_record("test_records.unicorn")

def test_definition_errors():
    with pytest.raises(TypeError):
        defrecord("test_records.bad", ["x", "x"])
    with pytest.raises(TypeError):
        defrecord("test_records.bad", ["name"], parent=animal)  # clashes with an inherited field
    with pytest.raises(TypeError):
        defrecord("test_records.bad", parent=int)

@generic
def sound(a: animal):
    return "..."
@generic
def sound(a: dog):  # noqa: F811, registered as a method of the same generic function.
    return "woof"

def test_dispatch_follows_parent_chain():
    assert sound(dog("Rex")) == "woof"
    assert sound(puppy("Rex")) == "woof"  # the nearest ancestor wins
    assert sound(cat("Tom")) == "..."  # no method for cat; the parent's applies
    assert sound(animal("?")) == "..."

@generic
def lineage(a: animal):
    return ["animal"]
@generic
def lineage(call_next_method, a: dog):  # noqa: F811
    return ["dog"] + call_next_method()
@generic
def lineage(call_next_method, a: puppy):  # noqa: F811
    return ["puppy"] + call_next_method()

def test_next_method_follows_parent_chain():
    assert lineage(puppy("Rex")) == ["puppy", "dog", "animal"]
    assert lineage(dog("Rex")) == ["dog", "animal"]
