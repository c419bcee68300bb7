# -*- coding: utf-8; -*-
"""End-to-end example: areas of shapes, with an audit trail."""

import math
import typing

import pytest

from ..dispatch import defgeneric, augment, before, format_methods
from ..errors import NoApplicableMethodError
from ..records import defrecord

shape = defrecord("test_shapes.shape")
circle = defrecord("test_shapes.circle", ["r"], parent=shape)
square = defrecord("test_shapes.square", ["s"], parent=shape)
triangle = defrecord("test_shapes.triangle", ["a", "b", "c"], parent=shape)

calls = []

@defgeneric
def area(s):
    """Return the area of shape `s`."""
    ...
@augment(area)
def area(s: circle):  # noqa: F811, registered as a method of the same generic function.
    return math.pi * s.r**2
@augment(area)
def area(s: square):  # noqa: F811
    return s.s**2
@before(area)
def area(s: typing.Any):  # noqa: F811
    calls.append(s)

def test_area():
    calls.clear()
    assert area(circle(r=2)) == pytest.approx(4 * math.pi)
    assert calls == [circle(r=2)]
    assert area(square(3)) == 9
    assert len(calls) == 2
    with pytest.raises(NoApplicableMethodError):
        area(triangle(3, 4, 5))

def test_area_methods_listing():
    text = format_methods(area)
    assert "area (s: test_shapes.circle)" in text
    assert "area :before ()" in text
