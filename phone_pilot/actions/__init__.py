# Actions Module
from .coordinates import to_absolute
from .decoder import decode_action, is_finish
from .handler import ActionHandler, DispatchTimings
from .schema import Action, parse_action

__all__ = [
    "to_absolute",
    "decode_action",
    "is_finish",
    "ActionHandler",
    "DispatchTimings",
    "Action",
    "parse_action",
]
