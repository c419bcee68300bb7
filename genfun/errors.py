# -*- coding: utf-8; -*-
"""Error conditions signaled by generic functions.

Every error carries the name of the generic function it concerns, so that a
caller (or a help/describe layer) can report it without re-deriving anything.

The dispatch failures also inherit from `TypeError`, because from the caller's
point of view, a call that no method accepts is a call with arguments of the
wrong type. This matches how plain Python reacts to bad arguments.
"""

__all__ = ["GenericFunctionError",
           "NoApplicableMethodError", "NoPrimaryMethodError", "NoNextMethodError",
           "CyclicDefinitionError",
           "InvalidPrecedenceError", "UnsupportedQualifiersError"]

def _format_args(args, kwargs):
    args_list = [repr(x) for x in args]
    kws_list = [f"{k}={repr(v)}" for k, v in kwargs.items()]
    return ", ".join(args_list + kws_list)

class GenericFunctionError(Exception):
    """Base class for errors related to generic functions.

    `name`: the name of the generic function.
    """
    def __init__(self, name, message):
        super().__init__(message)
        self.name = name

class NoApplicableMethodError(GenericFunctionError, TypeError):
    """Raised when no method of a generic function applies to the given arguments.

    `candidates`: optional human-readable descriptions of the methods that
                  were considered, included in the message.
    """
    headline = "No applicable method"

    def __init__(self, name, args=(), kwargs=None, *, candidates=()):
        kwargs = kwargs or {}
        self.call_args = tuple(args)
        self.call_kwargs = dict(kwargs)
        msg = f"{self.headline} for the call {name}({_format_args(args, kwargs)})."
        if candidates:
            methods_str = "\n".join(f"  {x}" for x in candidates)
            msg += f"\nMethods for generic function {name}:\n{methods_str}"
        super().__init__(name, msg)

class NoPrimaryMethodError(NoApplicableMethodError):
    """Raised when only `:before`, `:after` or `:around` methods apply.

    This is a subclass of `NoApplicableMethodError`, so code that only cares
    whether the call could be handled at all can catch the base class.
    """
    headline = "No primary method (only qualified methods apply)"

class NoNextMethodError(GenericFunctionError, TypeError):
    """Raised when a method invokes its next-method continuation, but there is no next method.

    `method`: the method whose continuation was invoked.
    """
    def __init__(self, name, method, args=(), kwargs=None):
        kwargs = kwargs or {}
        self.method = method
        self.call_args = tuple(args)
        self.call_kwargs = dict(kwargs)
        super().__init__(name, f"No next method after {method} for the call {name}({_format_args(args, kwargs)}).")

class CyclicDefinitionError(GenericFunctionError, RuntimeError):
    """Raised when building an effective method ends up needing that same effective method."""
    def __init__(self, name):
        super().__init__(name, f"Cyclic definition: building an effective method of {name} requires itself.")

class InvalidPrecedenceError(GenericFunctionError, ValueError):
    """Raised when an argument precedence order names something other than a mandatory parameter."""
    def __init__(self, name, precedence, params):
        self.precedence = tuple(precedence)
        self.params = tuple(params)
        super().__init__(name, (f"Invalid argument precedence {list(precedence)} for {name}; "
                                f"it must name distinct mandatory parameters from {list(params)}."))

class UnsupportedQualifiersError(GenericFunctionError, ValueError):
    """Raised when the method combination does not understand a method's qualifiers."""
    def __init__(self, name, qualifiers):
        self.qualifiers = tuple(qualifiers)
        qualifiers_str = " ".join(str(q) for q in qualifiers)
        super().__init__(name, f"Unsupported qualifiers in generic function {name}: ({qualifiers_str})")
