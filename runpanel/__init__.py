"""runpanel: run commands and follow their output in a floating panel."""

from importlib.metadata import version

from runpanel.adapter import AdapterAPI
from runpanel.config import DEFAULT_CONFIG
from runpanel.config import deep_merge
from runpanel.geometry import resolve
from runpanel.models import RunHandle
from runpanel.models import RunRecord
from runpanel.models import RunSpec
from runpanel.models import RunStatus
from runpanel.models import StreamOptions
from runpanel.models import Target
from runpanel.session import Session
from runpanel.state.panel_state import PanelMode
from runpanel.surface import RichSurfaceHost
from runpanel.surface import SurfaceHost
from runpanel.surface import SurfaceView
from runpanel.types import Bounds

__version__ = version("runpanel")

__all__ = [
    "AdapterAPI",
    "Bounds",
    "DEFAULT_CONFIG",
    "PanelMode",
    "RichSurfaceHost",
    "RunHandle",
    "RunRecord",
    "RunSpec",
    "RunStatus",
    "Session",
    "StreamOptions",
    "SurfaceHost",
    "SurfaceView",
    "Target",
    "deep_merge",
    "resolve",
]
