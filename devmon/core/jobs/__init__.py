"""Background jobs infrastructure.

Only the cancellation primitive lives here; the sampler owns its thread.
"""

from .cancel_token import CancelToken

__all__ = ["CancelToken"]
