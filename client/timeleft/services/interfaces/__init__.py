"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing store logic.
"""

from .token_store import TokenStore
from .memory_token_store import MemoryTokenStore
from .checkout import CheckoutGateway

__all__ = ['TokenStore', 'MemoryTokenStore', 'CheckoutGateway']
