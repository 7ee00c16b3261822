"""Single-thread ownership for ambient redirection state.

A set of sink stacks is only consistent if one thread of control mutates it.
SingleThreadEnforcerMixin binds each instance to the thread that created it
and rejects mutations from any other thread. Ownership is per instance, so
separate contexts may live on separate threads (for example one per event
loop). After a fork, the child's thread takes over ownership of every
inherited instance on its first mutation.
"""

from __future__ import annotations

import inspect
import os
import threading

__all__ = ['SingleThreadEnforcerMixin']


class SingleThreadEnforcerMixin:
    """Restrict mutation of an object to the thread that created it.

    Instantiation registers the current thread as the owner. Mutating methods
    call _restrict_to_single_thread() before touching shared state.

    Raises:
        RuntimeError: If _restrict_to_single_thread is called from a thread
            other than the owner.

    Example:
        >>> class SinkRegistry(SingleThreadEnforcerMixin):
        ...     def register(self, sink):
        ...         self._restrict_to_single_thread()
        ...         ...
    """

    def __init__(self, *args, **kwargs):
        """Initialize and register the current thread as the owner."""
        self._claim_thread_ownership()
        super().__init__(*args, **kwargs)

    def _claim_thread_ownership(self) -> None:
        """Make the current thread the owner of this instance."""
        self._owner_thread_native_id = threading.get_native_id()
        self._owner_thread_name = threading.current_thread().name
        self._owner_process_id = os.getpid()

    def _restrict_to_single_thread(self) -> None:
        """Validate that the current thread owns this instance.

        Raises:
            RuntimeError: If called from a thread other than the owner.
        """
        if os.getpid() != self._owner_process_id:
            self._claim_thread_ownership()
            return

        current_thread_native_id = threading.get_native_id()
        if current_thread_native_id == self._owner_thread_native_id:
            return

        caller = inspect.stack()[1]
        raise RuntimeError(
            f"{type(self).__name__} may only be changed by its owner thread.\n"
            f"Owner thread : {self._owner_thread_native_id} ({self._owner_thread_name})\n"
            f"Current thread: {current_thread_native_id} "
            f"({threading.current_thread().name}) at "
            f"{caller.filename}:{caller.lineno}\n"
            "Redirect output from the thread that created the context, or give "
            "this thread its own AmbientOutputContext.")
