"""Assistant client strategies."""

from .anthropic_client import AnthropicAssistantClient
from .base import AssistantReply, AssistantRequest, IAssistantClient
from .http_client import HttpAssistantClient
from .probe import HttpConnectivityProbe, IConnectivityProbe, StaticConnectivityProbe
from .simulated import SimulatedAssistantClient

__all__ = [
    "AnthropicAssistantClient",
    "AssistantReply",
    "AssistantRequest",
    "IAssistantClient",
    "HttpAssistantClient",
    "HttpConnectivityProbe",
    "IConnectivityProbe",
    "StaticConnectivityProbe",
    "SimulatedAssistantClient",
]
