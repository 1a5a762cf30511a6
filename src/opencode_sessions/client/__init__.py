"""OpenCode client package.

This namespace hosts the async `OpencodeClient` along with supporting
types (`types.py`) and transport helpers (`transport.py`). Importing from
this module keeps the public surface stable while the route table stays
modular for testing.
"""

from .client import OpencodeClient, SessionResource
from .errors import OpencodeClientError
from .types import ApiResult, ClientSettings

__all__ = ["OpencodeClient", "SessionResource", "OpencodeClientError", "ApiResult", "ClientSettings"]
