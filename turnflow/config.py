"""
Runtime configuration read from the environment.

TURNFLOW_MAX_ITERATIONS  Default cap for Loop / EachPlayer / ForEach counters
TURNFLOW_LOG_LEVEL       Log level used by the CLI (DEBUG, INFO, WARNING, ...)
"""

import os

TURNFLOW_MAX_ITERATIONS = int(os.getenv("TURNFLOW_MAX_ITERATIONS", "10000"))
TURNFLOW_LOG_LEVEL = os.getenv("TURNFLOW_LOG_LEVEL", "WARNING").upper()
