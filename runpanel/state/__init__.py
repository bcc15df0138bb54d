"""Session-owned state for the panel state machine.

- PanelState: the single mutable state object of a session
- Generation: stamp source guarding delayed actions
- TargetRegistry: LRU registry of known targets
- Clock: injectable time source
"""

from runpanel.state.clock import Clock
from runpanel.state.clock import FrozenClock
from runpanel.state.clock import SystemClock
from runpanel.state.panel_state import Generation
from runpanel.state.panel_state import PanelMode
from runpanel.state.panel_state import PanelState
from runpanel.state.targets import TargetRegistry

__all__ = [
    "Clock",
    "FrozenClock",
    "Generation",
    "PanelMode",
    "PanelState",
    "SystemClock",
    "TargetRegistry",
]
