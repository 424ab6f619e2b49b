from .gatekeeper import *  # noqa
from .commands import *  # noqa
