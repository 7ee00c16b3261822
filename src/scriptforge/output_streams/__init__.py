"""Output sinks, capture channels and the ambient output context.

This package provides:
- OutputStream: the redirectable process streams
- OutputSink and its variants RealSink, NullSink and CaptureSink
- CaptureChannel: observable sequence of captured output
- AmbientOutputContext: per-stream LIFO stacks of sink overrides
"""

from .ambient_context import *
from .capture_channel import *
from .output_sinks import *
