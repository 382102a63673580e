"""HTTP clients for upstream APIs."""

from .aura import AuraClient

__all__ = ["AuraClient"]
