"""Omega: record terminal sessions and animated web pages."""

# Import key modules for easy access
from . import config_loader as config_loader
from . import fsm as fsm
from . import recording as recording

# Version information
__version__ = "0.1.0"
__author__ = "Omega Team"

# Expose commonly used classes
from .config_loader import load_config as load_config
from .fsm import Event as Event
from .fsm import State as State
from .fsm import StateMachine as StateMachine
from .recording.models import Record as Record
from .recording.models import Recording as Recording

__all__ = [
    "config_loader",
    "fsm",
    "recording",
    "load_config",
    "Event",
    "State",
    "StateMachine",
    "Record",
    "Recording",
]
