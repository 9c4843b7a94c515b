"""In-memory push transport: records agent registrations, displays and subscriptions."""
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from eats_notify.domain.push.models import (
    PushOptions,
    PushPermission,
    SubscriptionDescriptor,
    SubscriptionKeys,
)


@dataclass
class AgentRegistration:
    handle: str
    script_path: str


@dataclass
class DisplayedNotification:
    title: str
    options: PushOptions
    via: str  # "agent" or "direct"
    handle: Optional[str] = None


@dataclass
class InMemoryPushTransport:
    """Push transport that keeps everything in memory for tests and headless runs."""

    supported: bool = True
    permission_answer: PushPermission = PushPermission.GRANTED
    agent_registered: bool = False
    fail_agent_display: bool = False
    fail_registration: bool = False
    fail_subscribe: bool = False
    existing_subscription: Optional[SubscriptionDescriptor] = None

    permission_requests: int = 0
    registrations: list[AgentRegistration] = field(default_factory=list)
    displayed: list[DisplayedNotification] = field(default_factory=list)
    subscribe_keys: list[bytes] = field(default_factory=list)
    _handle: Optional[str] = None

    def __post_init__(self):
        if self.agent_registered:
            self._handle = f"agent-{uuid4().hex[:8]}"

    @property
    def is_supported(self) -> bool:
        return self.supported

    async def request_permission(self) -> PushPermission:
        self.permission_requests += 1
        return self.permission_answer

    async def get_agent(self) -> Optional[str]:
        return self._handle

    async def register_background_agent(self, script_path: str) -> str:
        if self.fail_registration:
            raise RuntimeError("background agent registration failed")
        self._handle = f"agent-{uuid4().hex[:8]}"
        self.registrations.append(AgentRegistration(handle=self._handle, script_path=script_path))
        return self._handle

    async def show_via_agent(self, handle: Any, title: str, options: PushOptions) -> None:
        if self.fail_agent_display:
            raise RuntimeError("agent display failed")
        self.displayed.append(DisplayedNotification(title=title, options=options, via="agent", handle=handle))

    def show_direct(self, title: str, options: PushOptions) -> None:
        self.displayed.append(DisplayedNotification(title=title, options=options, via="direct"))

    async def get_subscription(self, handle: Any) -> Optional[SubscriptionDescriptor]:
        return self.existing_subscription

    async def subscribe(self, handle: Any, application_server_key: bytes) -> SubscriptionDescriptor:
        if self.fail_subscribe:
            raise RuntimeError("push subscribe failed")
        self.subscribe_keys.append(application_server_key)
        descriptor = SubscriptionDescriptor(
            endpoint=f"https://push.example.invalid/{uuid4().hex}",
            keys=SubscriptionKeys(p256dh=uuid4().hex, auth=uuid4().hex[:16]),
        )
        self.existing_subscription = descriptor
        return descriptor

    def rotate_endpoint(self) -> SubscriptionDescriptor:
        """Simulate the platform re-issuing the subscription."""
        descriptor = SubscriptionDescriptor(
            endpoint=f"https://push.example.invalid/{uuid4().hex}",
            keys=SubscriptionKeys(p256dh=uuid4().hex, auth=uuid4().hex[:16]),
        )
        self.existing_subscription = descriptor
        return descriptor


class UnsupportedPushTransport:
    """Platform without any notification capability."""

    @property
    def is_supported(self) -> bool:
        return False

    async def request_permission(self) -> PushPermission:
        raise NotImplementedError("push is not supported on this platform")

    async def get_agent(self) -> None:
        return None

    async def register_background_agent(self, script_path: str) -> Any:
        raise NotImplementedError("push is not supported on this platform")

    async def show_via_agent(self, handle: Any, title: str, options: PushOptions) -> None:
        raise NotImplementedError("push is not supported on this platform")

    def show_direct(self, title: str, options: PushOptions) -> None:
        raise NotImplementedError("push is not supported on this platform")

    async def get_subscription(self, handle: Any) -> Optional[SubscriptionDescriptor]:
        return None

    async def subscribe(self, handle: Any, application_server_key: bytes) -> SubscriptionDescriptor:
        raise NotImplementedError("push is not supported on this platform")
