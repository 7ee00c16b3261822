"""Ambient output redirection and scoped temporary resources for scripts.

This package lets any code temporarily silence or capture the process's
stdout and stderr, including output from work it schedules to run right
after the call, and obtain uniquely named temporary paths and directories
that are removed on every exit path, sync or async, success or failure.

Public API:
- silence_stdout / silence_stderr / silence_output: Run a callable with output discarded.
- capture_stdout / capture_stderr / capture_output: Run a callable with output captured into channels.
- Captured / CapturedOutput: Named results of the capture functions.
- OutputCapturer: Context manager that captures stdout and stderr.
- OutputSuppressor: Context manager that suppresses stdout and stderr.
- RedirectionScope: One install/remove transaction against the ambient output context.
- with_temp_path / with_temp_dir: Run a callable with a temporary path or directory.
- temp_path / temp_dir: Context manager forms of the temporary resources.
- TempResource / TempResourceKind: A generated temporary path and its kind.
- generate_unique_path: Build a unique path under a parent directory.
- AmbientOutputContext: Per-stream stacks of sink overrides.
- get_ambient_context: The process-wide default AmbientOutputContext.
- current_stdout / current_stderr: The sinks writes currently go to.
- OutputStream: The redirectable process streams.
- OutputSink / RealSink / NullSink / CaptureSink: Output destinations.
- CaptureChannel: Observable sequence of captured output.
- ScopeToken: Receipt for one sink override.
- ScopeOrderError: Raised when overrides are removed out of order.
- ChannelNotClosedError: Raised when a capture channel is unexpectedly open.
- run_with_release: Couple cleanup to sync or async completion of a callable.
- defer_until_scheduled_drained: Run a callback after the loop's queued callbacks.
"""

from ._version_info import __version__
from .context_managers import (
    Captured,
    CapturedOutput,
    OutputCapturer,
    OutputSuppressor,
    RedirectionScope,
    TempResource,
    TempResourceKind,
    capture_output,
    capture_stderr,
    capture_stdout,
    silence_output,
    silence_stderr,
    silence_stdout,
    temp_dir,
    temp_path,
    with_temp_dir,
    with_temp_path,
)
from .output_streams import (
    AmbientOutputContext,
    CaptureChannel,
    CaptureSink,
    ChannelNotClosedError,
    NullSink,
    OutputSink,
    OutputStream,
    RealSink,
    ScopeOrderError,
    ScopeToken,
    current_stderr,
    current_stdout,
    get_ambient_context,
)
from .utility_functions import (
    defer_until_scheduled_drained,
    generate_unique_path,
    run_with_release,
)

__all__ = [
    'AmbientOutputContext',
    'CaptureChannel',
    'CaptureSink',
    'Captured',
    'CapturedOutput',
    'ChannelNotClosedError',
    'NullSink',
    'OutputCapturer',
    'OutputSink',
    'OutputStream',
    'OutputSuppressor',
    'RealSink',
    'RedirectionScope',
    'ScopeOrderError',
    'ScopeToken',
    'TempResource',
    'TempResourceKind',
    '__version__',
    'capture_output',
    'capture_stderr',
    'capture_stdout',
    'current_stderr',
    'current_stdout',
    'defer_until_scheduled_drained',
    'generate_unique_path',
    'get_ambient_context',
    'run_with_release',
    'silence_output',
    'silence_stderr',
    'silence_stdout',
    'temp_dir',
    'temp_path',
    'with_temp_dir',
    'with_temp_path',
]
