"""Scoped output redirection and temporary filesystem resources.

This package provides:
- silence_* and capture_* callables, tied to the callback's completion
- OutputCapturer and OutputSuppressor for with-blocks
- with_temp_path, with_temp_dir, temp_path and temp_dir
"""

from .output_capturer import *
from .redirection_scope import *
from .temp_resources import *
