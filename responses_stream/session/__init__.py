"""Session lifecycle: state, transports, controller.

Only the state types are imported here; import the controller and transports
from their modules.
"""

from .state import Phase, SessionState

__all__ = ["Phase", "SessionState"]
