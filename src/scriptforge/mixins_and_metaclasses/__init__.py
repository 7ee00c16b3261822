"""Mixins shared by scriptforge components.

- SingleThreadEnforcerMixin: restricts mutation of ambient state to one thread.
"""

from .single_thread_enforcer_mixin import SingleThreadEnforcerMixin

__all__ = ['SingleThreadEnforcerMixin']
