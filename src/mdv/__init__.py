"""mdv: a terminal markdown viewer."""

__version__ = "0.1.0"

from mdv.config import Config
from mdv.errors import MdvError
from mdv.renderer import EventRenderer, TerminalRenderer

__all__ = [
    "Config",
    "EventRenderer",
    "MdvError",
    "TerminalRenderer",
    "__version__",
]
