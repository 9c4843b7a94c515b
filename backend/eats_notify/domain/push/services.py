"""Push notification orchestration.

Permission state machine: DEFAULT -> (request) -> GRANTED | DENIED.
DENIED is sticky for the lifetime of the service; the user is never
re-prompted automatically. Every operation degrades to a logged no-op when
the platform lacks push support, so the host application stays usable.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Optional

from eats_notify.domain.notifications.services import NotificationService
from eats_notify.domain.push.dispatch import LocalDisplayDispatcher, PushDispatcher
from eats_notify.domain.push.models import PushOptions, PushPermission, PushSubscription
from eats_notify.domain.push.repositories import AppSettingsStore, PushSubscriptionStore
from eats_notify.domain.push.transport import AgentHandle, PushTransport
from eats_notify.settings import settings

logger = logging.getLogger(__name__)


def default_push_options() -> PushOptions:
    """Display defaults from settings."""
    return PushOptions(
        icon=settings.push_icon,
        badge=settings.push_badge,
        vibrate=list(settings.push_vibrate),
        tag=settings.push_tag,
        require_interaction=False,
    )


def url_base64_to_bytes(value: str) -> bytes:
    """Decode a URL-safe base64 key (VAPID), restoring stripped padding."""
    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode(value + padding)


@dataclass
class PushCapabilityState:
    """Per-session capability and permission; owned by one service instance."""

    supported: bool
    permission: PushPermission = PushPermission.DEFAULT


class PushNotificationService:
    """Permission, subscription lifecycle and best-effort display."""

    def __init__(
        self,
        transport: PushTransport,
        subscription_store: PushSubscriptionStore,
        settings_store: AppSettingsStore,
        notification_service: NotificationService,
        dispatcher: Optional[PushDispatcher] = None,
        state: Optional[PushCapabilityState] = None,
    ):
        self.transport = transport
        self.subscription_store = subscription_store
        self.settings_store = settings_store
        self.notification_service = notification_service
        self.dispatcher = dispatcher or LocalDisplayDispatcher(self)
        self.state = state or PushCapabilityState(supported=transport.is_supported)

    @property
    def permission(self) -> PushPermission:
        return self.state.permission

    async def request_permission(self) -> PushPermission:
        """Ask for permission once. Never raises; unsupported platforms get DENIED."""
        if not self.state.supported:
            logger.warning("Push notifications are not supported on this platform")
            return PushPermission.DENIED
        if self.state.permission != PushPermission.DEFAULT:
            return self.state.permission
        try:
            result = PushPermission(await self.transport.request_permission())
        except Exception as e:
            logger.error("Requesting notification permission failed: %s", e)
            return PushPermission.DENIED
        self.state.permission = result
        logger.info("Notification permission: %s", result.value)
        return result

    async def register_background_agent(self) -> Optional[AgentHandle]:
        """Register the background delivery agent. Returns None (logged) on failure."""
        if not self.state.supported:
            logger.warning("Background delivery agents are not supported on this platform")
            return None
        try:
            handle = await self.transport.register_background_agent(settings.push_service_worker_path)
        except Exception as e:
            logger.error(
                "Registering background agent %s failed: %s", settings.push_service_worker_path, e
            )
            return None
        logger.info("Background agent registered: %s", settings.push_service_worker_path)
        return handle

    async def _ensure_agent(self) -> AgentHandle:
        handle = await self.transport.get_agent()
        if handle is None:
            handle = await self.transport.register_background_agent(settings.push_service_worker_path)
        return handle

    async def show_notification(self, title: str, options: Optional[PushOptions] = None) -> bool:
        """Show a platform notification; returns True if something was displayed.

        Goes through the background agent (registering one if absent) and
        falls back to a direct display when that path fails.
        """
        if not self.state.supported:
            return False
        if self.state.permission != PushPermission.GRANTED:
            permission = await self.request_permission()
            if permission != PushPermission.GRANTED:
                logger.warning("Notification permission not granted (%s); skipping '%s'", permission.value, title)
                return False

        display_options = (options or PushOptions()).merged_over(default_push_options())
        try:
            handle = await self._ensure_agent()
            await self.transport.show_via_agent(handle, title, display_options)
            return True
        except Exception as e:
            logger.error("Showing notification via background agent failed: %s", e)

        if self.state.permission != PushPermission.GRANTED:
            return False
        try:
            self.transport.show_direct(title, display_options)
        except Exception as e:
            logger.error("Direct notification fallback failed: %s", e)
            return False
        return True

    async def setup_push_subscription(self, user_id: str) -> Optional[PushSubscription]:
        """Create or reuse the platform subscription and upsert it for the user.

        Always re-reads the platform's current subscription so a rotated
        endpoint replaces the stored one. Returns None (logged) on any failure.
        """
        if not self.state.supported:
            return None
        try:
            handle = await self._ensure_agent()
            descriptor = await self.transport.get_subscription(handle)
            if descriptor is None:
                public_key = await self.settings_store.get_value(settings.vapid_public_key_setting)
                if not public_key:
                    logger.error("VAPID public key not found (setting %s)", settings.vapid_public_key_setting)
                    return None
                descriptor = await self.transport.subscribe(handle, url_base64_to_bytes(public_key))
            subscription = PushSubscription.from_descriptor(user_id, descriptor)
            saved = await self.subscription_store.upsert(subscription)
        except Exception as e:
            logger.error("Setting up push subscription failed user_id=%s: %s", user_id, e)
            return None
        logger.info("Push subscription saved for user %s", user_id)
        return saved

    async def send_push_notification(
        self,
        user_id: str,
        title: str,
        options: Optional[PushOptions] = None,
    ) -> bool:
        """Dispatch to the user's stored subscription and record a system notification.

        With the default dispatcher this only reaches the current device.
        Returns True if the dispatcher reported delivery.
        """
        options = options or PushOptions()
        try:
            subscription = await self.subscription_store.get_by_user(user_id)
        except Exception as e:
            logger.error("Looking up push subscription failed user_id=%s: %s", user_id, e)
            return False
        if subscription is None:
            logger.warning("No push subscription for user %s", user_id)
            return False

        try:
            delivered = await self.dispatcher.dispatch(subscription, title, options)
        except Exception as e:
            logger.error("Push dispatch failed user_id=%s: %s", user_id, e)
            delivered = False

        await self.notification_service.create_system_notification(user_id, title, options.body or "")
        return delivered
