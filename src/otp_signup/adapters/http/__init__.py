"""HTTP adapters - Remote signup backend."""

from .backend import HttpSignupBackend

__all__ = ["HttpSignupBackend"]
