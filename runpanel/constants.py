"""Centralized constants for runpanel.

This module consolidates tuning constants and magic numbers used across
multiple modules so that defaults stay consistent between the config
layer, the poller and the panel.
"""

# =============================================================================
# Polling
# =============================================================================

#: Default log polling interval in seconds
DEFAULT_POLL_INTERVAL: float = 0.25

#: Lower bound for the polling interval; smaller configured values are raised to this
MIN_POLL_INTERVAL: float = 0.01

#: Maximum number of bytes read from a log file in a single poll (4 MB)
#: Larger backlogs are consumed over several ticks
MAX_READ_CHUNK: int = 4 * 1024 * 1024

# =============================================================================
# Display Buffer
# =============================================================================

#: Default number of lines kept in a display buffer before the oldest are dropped
DEFAULT_MAX_LINES: int = 5000

#: Default distance from the end of the buffer within which follow mode re-engages
DEFAULT_SCROLLOFF_MARGIN: int = 3

# =============================================================================
# Panel
# =============================================================================

#: Default number of surface creation retries while the host viewport is not ready
DEFAULT_OPEN_RETRIES: int = 10

#: Default delay between surface creation retries in seconds
DEFAULT_OPEN_RETRY_DELAY: float = 0.05

#: Default auto-hide delay in seconds
DEFAULT_AUTO_HIDE_DELAY: float = 2.0

#: Maximum number of targets kept before least-recently used ones are discarded
MAX_TARGETS: int = 16

# =============================================================================
# Runs
# =============================================================================

#: Exit code reported when a command could not be spawned at all
SPAWN_FAILURE_EXIT_CODE: int = 127

#: Prefix of the temporary log files written for each run
LOG_FILE_PREFIX: str = "runpanel-"

#: Default notification title
DEFAULT_TITLE: str = "runpanel"

# =============================================================================
# Colors
# =============================================================================

#: Border color for a running command
RUNNING_COLOR: str = "#26a8e0"

#: Border color for a command that exited successfully
SUCCESS_COLOR: str = "#38b44a"

#: Border color for a command that failed
FAILURE_COLOR: str = "red"
