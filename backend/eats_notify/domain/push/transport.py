"""Push transport protocol: the platform's notification capability."""
from typing import Any, Optional, Protocol

from eats_notify.domain.push.models import PushOptions, PushPermission, SubscriptionDescriptor

# Opaque handle for a registered background delivery agent
AgentHandle = Any


class PushTransport(Protocol):
    """Permission negotiation, background agent registration and local display."""

    @property
    def is_supported(self) -> bool:
        """False when the platform has no notification capability at all."""
        ...

    async def request_permission(self) -> PushPermission:
        """Prompt the user. May raise on platform errors."""
        ...

    async def get_agent(self) -> Optional[AgentHandle]:
        """Currently registered, ready agent or None."""
        ...

    async def register_background_agent(self, script_path: str) -> AgentHandle:
        ...

    async def show_via_agent(self, handle: AgentHandle, title: str, options: PushOptions) -> None:
        ...

    def show_direct(self, title: str, options: PushOptions) -> None:
        """Immediate in-page notification; no agent involved."""
        ...

    async def get_subscription(self, handle: AgentHandle) -> Optional[SubscriptionDescriptor]:
        """Subscription the platform currently holds for the agent, if any."""
        ...

    async def subscribe(self, handle: AgentHandle, application_server_key: bytes) -> SubscriptionDescriptor:
        ...
