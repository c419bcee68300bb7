# -*- coding: utf-8 -*
"""Generic functions with multiple dispatch and method combination, in the style of CLOS.

See ``dir(genfun)`` and submodule docstrings for more. The place to start is
``genfun.dispatch``.
"""

__version__ = '0.1.0'

from .errors import *  # noqa: F401, F403
from .qualifiers import *  # noqa: F401, F403
from .records import *  # noqa: F401, F403
from .specializers import *  # noqa: F401, F403
from .model import *  # noqa: F401, F403
from .registry import *  # noqa: F401, F403
from .combination import *  # noqa: F401, F403
from .cache import *  # noqa: F401, F403
from .dispatch import *  # noqa: F401, F403

# HACK: break dependency loop. The built-in methods of the extension generic
# functions are defined with the machinery they extend. `combine_methods` must
# have its default method before any other generic function can be called.
from .combination import _init_module as _init_combination
from .registry import _init_module as _init_registry
_init_combination()
_init_registry()
del _init_combination, _init_registry
