from devflow.relay.exchange import FailureReason, RelayExchange, RelayState
from devflow.relay.upstream import OpenAICompatibleUpstream, UpstreamProvider, build_messages

__all__ = [
    "FailureReason",
    "OpenAICompatibleUpstream",
    "RelayExchange",
    "RelayState",
    "UpstreamProvider",
    "build_messages",
]
