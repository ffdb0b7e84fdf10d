"""
runtime - The Shell
===================

Run methods:
    conference-rent --mode demo
    conference-rent --mode interactive
    conference-rent --mode race --customers 20

What the runtime does:
- Loads YAML configuration
- Configures logging
- Starts Agents, then Buildings, on one in-process broker
- Hands out started CustomerSessions

What the runtime does NOT do:
- Route messages (that's transport)
- Decide bookings (that's fsm, inside each Building)
"""

from .config import Config, load_config
from .logging_config import configure_logging
from .runner import BookingRuntime, RuntimeConfig, format_buildings, main, wait_until

__all__ = [
    "Config",
    "load_config",
    "configure_logging",
    "BookingRuntime",
    "RuntimeConfig",
    "format_buildings",
    "main",
    "wait_until",
]
