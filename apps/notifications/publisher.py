# apps/notifications/publisher.py - room-scoped booking events
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string
import logging

logger = logging.getLogger(__name__)

BOOKING_CREATED = 'booking-created'
BOOKING_CANCELLED = 'booking-cancelled'


def room_group_name(room_id):
    return f"room-{room_id}"


class BookingEventPublisher:
    """
    Best-effort fan-out of booking events to subscribers of a room.

    Implementations must never raise: a lost notification does not fail the
    booking operation that triggered it.
    """

    def publish(self, room_id, event_name, payload):
        raise NotImplementedError


class NullPublisher(BookingEventPublisher):
    def publish(self, room_id, event_name, payload):
        logger.debug(f"Dropped {event_name} for room {room_id}")


class ChannelLayerPublisher(BookingEventPublisher):
    """Sends events to the Channels group that RoomEventsConsumer joins."""

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def publish(self, room_id, event_name, payload):
        try:
            channel_layer = self.channel_layer
            if channel_layer is None:
                logger.warning(f"No channel layer configured, skipping {event_name} for room {room_id}")
                return

            async_to_sync(channel_layer.group_send)(
                room_group_name(room_id),
                {
                    'type': 'booking.event',
                    'event': event_name,
                    'room_id': room_id,
                    'payload': payload,
                    'timestamp': timezone.now().isoformat(),
                }
            )
            logger.info(f"Broadcasted {event_name} to room {room_id}")

        except Exception as e:
            logger.error(f"Error broadcasting {event_name} to room {room_id}: {e}")


def get_booking_publisher():
    """Instantiate the publisher class named by settings.BOOKING_EVENT_PUBLISHER."""
    return import_string(settings.BOOKING_EVENT_PUBLISHER)()
