"""Fan-out of lifecycle events to user notifications"""
import logging
from decimal import Decimal

from application.message_bus import EventBus
from domain.enums import EventType, NotificationType
from domain.events import LifecycleEvent
from domain.gateways import NotificationDispatcher
from domain.value_objects import format_amount

logger = logging.getLogger(__name__)


class LifecycleNotifier:
    """Turns lifecycle events into notifications for tenant and landlord"""

    def __init__(self, dispatcher: NotificationDispatcher, currency_symbol: str = "₱"):
        self.dispatcher = dispatcher
        self.currency_symbol = currency_symbol

    def register(self, bus: EventBus) -> None:
        bus.subscribe(EventType.RESERVATION_CREATED, self.on_reservation_created)
        bus.subscribe(EventType.PAYMENT_COMPLETED, self.on_payment_completed)
        bus.subscribe(EventType.RESERVATION_CONFIRMED, self.on_reservation_confirmed)
        bus.subscribe(EventType.RESERVATION_CANCELLED, self.on_reservation_cancelled)
        bus.subscribe(EventType.RESERVATION_COMPLETED, self.on_reservation_completed)
        bus.subscribe(EventType.PAYMENT_REFUNDED, self.on_payment_refunded)

    # ==================== HANDLERS ====================
    async def on_reservation_created(self, event: LifecycleEvent) -> None:
        title = _property_title(event)
        await self._notify(
            event, event.payload["landlord_id"], NotificationType.RESERVATION,
            "New Reservation Request",
            f'You have a new reservation request for "{title}"',
            action="created"
        )
        await self._notify(
            event, event.payload["tenant_id"], NotificationType.RESERVATION,
            "Reservation Submitted",
            f'Your reservation request for "{title}" has been submitted',
            action="created"
        )

    async def on_payment_completed(self, event: LifecycleEvent) -> None:
        amount = self._money(event.payload["amount"])
        await self._notify(
            event, event.payload["tenant_id"], NotificationType.PAYMENT,
            "Payment Successful",
            f'Your deposit payment of {amount} for "{_property_title(event)}" '
            f'has been processed successfully',
            action="completed",
            transactionId=str(event.payload["transaction_id"]),
            amount=str(event.payload["amount"])
        )

    async def on_reservation_confirmed(self, event: LifecycleEvent) -> None:
        await self._notify(
            event, event.payload["tenant_id"], NotificationType.RESERVATION,
            "Reservation Confirmed",
            f'Your reservation for "{_property_title(event)}" has been confirmed',
            action="confirmed"
        )

    async def on_reservation_cancelled(self, event: LifecycleEvent) -> None:
        title = _property_title(event)
        refund = Decimal(str(event.payload.get("refund_amount", 0)))
        tenant_message = f'Your reservation for "{title}" has been cancelled.'
        if refund > 0:
            tenant_message += f" Refund of {self._money(refund)} will be processed."

        await self._notify(
            event, event.payload["tenant_id"], NotificationType.RESERVATION,
            "Reservation Cancelled", tenant_message,
            action="cancelled", refundAmount=str(refund)
        )
        await self._notify(
            event, event.payload["landlord_id"], NotificationType.RESERVATION,
            "Reservation Cancelled",
            f'A reservation for "{title}" has been cancelled',
            action="cancelled"
        )

    async def on_reservation_completed(self, event: LifecycleEvent) -> None:
        title = _property_title(event)
        await self._notify(
            event, event.payload["tenant_id"], NotificationType.RESERVATION,
            "Reservation Completed",
            f'Your stay at "{title}" has been completed',
            action="completed"
        )
        await self._notify(
            event, event.payload["landlord_id"], NotificationType.RESERVATION,
            "Reservation Completed",
            f'The reservation for "{title}" has been completed',
            action="completed"
        )

    async def on_payment_refunded(self, event: LifecycleEvent) -> None:
        amount = self._money(event.payload["amount"])
        await self._notify(
            event, event.payload["tenant_id"], NotificationType.PAYMENT,
            "Refund Processed",
            f'Your refund of {amount} for "{_property_title(event)}" has been processed',
            action="refunded",
            transactionId=str(event.payload["transaction_id"]),
            amount=str(event.payload["amount"])
        )

    # ==================== HELPERS ====================
    async def _notify(self, event, user_id, notification_type, title, message, **metadata) -> None:
        # one failed delivery must not stop the other recipients
        try:
            await self.dispatcher.notify(
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                metadata={
                    "reservationId": str(event.reservation_id),
                    "propertyTitle": _property_title(event),
                    **metadata
                }
            )
        except Exception:
            logger.exception(
                "Failed to deliver %s notification to user %s for reservation %s",
                event.event_type.value, user_id, event.reservation_id
            )

    def _money(self, amount) -> str:
        return format_amount(Decimal(str(amount)), self.currency_symbol)


def _property_title(event: LifecycleEvent) -> str:
    return event.payload.get("property_title") or "your property"
