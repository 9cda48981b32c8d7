# weft/__init__.py

__version__ = '0.1'

from .errors import *
from .future import *
from .waker import *
from .clocks import *
from .timer import *
from .task import *
from .combinators import *
from .channels import *
from .stream import *
from .kernel import *

__all__ = [*errors.__all__,
           *future.__all__,
           *waker.__all__,
           *clocks.__all__,
           *timer.__all__,
           *task.__all__,
           *combinators.__all__,
           *channels.__all__,
           *stream.__all__,
           *kernel.__all__,
           ]
