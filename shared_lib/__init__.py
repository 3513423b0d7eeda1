"""
shared_lib: clients for systems outside the drift engine.

Public API:
    AimsClient            -- async vendor ESL platform client
    AimsGateway           -- RemoteGateway adapter over AimsClient
    AimsConnectionError   -- server unreachable or timed out
    AimsAuthError         -- credentials or token rejected
    AimsQueryError        -- other HTTP error or unreadable body
"""

from shared_lib.aims_client import (
    AimsClient,
    AimsGateway,
    AimsConnectionError,
    AimsAuthError,
    AimsQueryError,
)

__all__ = [
    "AimsClient",
    "AimsGateway",
    "AimsConnectionError",
    "AimsAuthError",
    "AimsQueryError",
]
