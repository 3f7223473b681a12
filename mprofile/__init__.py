from . import config  # noqa: F401
from .core import (  # noqa: F401
    IndexOutOfRangeError,
    InvalidInputError,
    InvalidSampleError,
    MatrixProfileError,
    ZeroVarianceError,
    mass,
)
from .mpx import mpx  # noqa: F401
from .mstomp import mstomp  # noqa: F401
from .pmp import PanMatrixProfile  # noqa: F401
from .profile import Algo, MatrixProfile  # noqa: F401
from .stamp import stamp  # noqa: F401
from .stats import RollingStats  # noqa: F401
from .stmp import stmp  # noqa: F401
from .stomp import stomp  # noqa: F401
