"""
Infrastructure layer - external system integrations.
Keeps store logic clean from transport and storage details.
"""

from .api_client import ApiClient, decode, decode_list
from .file_token_store import FileTokenStore

__all__ = ['ApiClient', 'decode', 'decode_list', 'FileTokenStore']
