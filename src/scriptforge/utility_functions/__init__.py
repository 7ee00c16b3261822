"""Utilities for scriptforge.

This package provides the low-level building blocks used by the context
managers, including:
- Coupling cleanup to sync or async callback completion
- Deferring work until the event loop's queued callbacks have run
- Unique path generation and path validation
"""

from .completion import *
from .unique_paths import *
