#!/usr/bin/env python3
"""Timing and discovery constants for clipboard synchronization.

These constants bound CPU usage while polling and control how quickly
the supervisor restarts after a backend failure.
"""

# Delay in seconds between full polling passes over all backends.
PASS_INTERVAL: float = 0.2

# Delay in seconds between checking one backend and the next within a pass.
CHECK_INTERVAL: float = 0.05

# Delay in seconds before rediscovering backends after a failed run.
RESTART_DELAY: float = 1.0

# Number of session identifiers tried per backend (wayland-N, :N).
SESSION_CANDIDATES: int = 256
