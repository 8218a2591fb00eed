from unittest import mock

from asgiref.sync import sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase, TransactionTestCase

from .consumers import RoomEventsConsumer
from .publisher import (
    BOOKING_CREATED,
    ChannelLayerPublisher,
    NullPublisher,
    get_booking_publisher,
    room_group_name,
)


class RoomEventsConsumerTestCase(TransactionTestCase):
    """Consumer dispatch touches the database connection."""

    async def connect(self):
        communicator = WebsocketCommunicator(RoomEventsConsumer.as_asgi(), '/ws/bookings/')
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        return communicator

    async def test_join_room_and_receive_booking_event(self):
        communicator = await self.connect()

        await communicator.send_json_to({'type': 'join_room', 'room_id': 3})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'joined', 'roomId': 3})

        await get_channel_layer().group_send(room_group_name(3), {
            'type': 'booking.event',
            'event': BOOKING_CREATED,
            'room_id': 3,
            'payload': {'booking': {'id': 7, 'status': 'pending'}},
            'timestamp': '2024-01-01T10:00:00+07:00',
        })

        message = await communicator.receive_json_from()
        self.assertEqual(message['type'], 'booking-created')
        self.assertEqual(message['roomId'], 3)
        self.assertEqual(message['booking'], {'id': 7, 'status': 'pending'})

        await communicator.disconnect()

    async def test_events_for_other_rooms_are_not_delivered(self):
        communicator = await self.connect()
        await communicator.send_json_to({'type': 'join_room', 'room_id': 1})
        await communicator.receive_json_from()

        await get_channel_layer().group_send(room_group_name(2), {
            'type': 'booking.event',
            'event': BOOKING_CREATED,
            'room_id': 2,
            'payload': {},
            'timestamp': '2024-01-01T10:00:00+07:00',
        })

        self.assertTrue(await communicator.receive_nothing())
        await communicator.disconnect()

    async def test_leave_room(self):
        communicator = await self.connect()
        await communicator.send_json_to({'type': 'join_room', 'room_id': 4})
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'leave_room', 'room_id': 4})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'left', 'roomId': 4})

        await get_channel_layer().group_send(room_group_name(4), {
            'type': 'booking.event',
            'event': BOOKING_CREATED,
            'room_id': 4,
            'payload': {},
            'timestamp': '2024-01-01T10:00:00+07:00',
        })
        self.assertTrue(await communicator.receive_nothing())
        await communicator.disconnect()

    async def test_heartbeat(self):
        communicator = await self.connect()

        await communicator.send_json_to({'type': 'heartbeat'})
        message = await communicator.receive_json_from()

        self.assertEqual(message['type'], 'heartbeat_ack')
        self.assertIn('timestamp', message)
        await communicator.disconnect()

    async def test_bad_messages(self):
        communicator = await self.connect()

        await communicator.send_to(text_data='not json')
        self.assertEqual(await communicator.receive_json_from(), {'type': 'error', 'message': 'Invalid JSON'})

        await communicator.send_json_to({'type': 'dance'})
        message = await communicator.receive_json_from()
        self.assertEqual(message['type'], 'error')

        await communicator.send_json_to({'type': 'join_room', 'room_id': 'abc'})
        message = await communicator.receive_json_from()
        self.assertEqual(message, {'type': 'error', 'message': 'room_id must be a positive integer'})

        await communicator.disconnect()


class ChannelLayerPublisherTestCase(SimpleTestCase):

    async def test_publish_sends_to_room_group(self):
        layer = get_channel_layer()
        channel = await layer.new_channel()
        await layer.group_add(room_group_name(5), channel)

        publisher = ChannelLayerPublisher(layer)
        await sync_to_async(publisher.publish)(5, BOOKING_CREATED, {'booking': {'id': 1}})

        message = await layer.receive(channel)
        self.assertEqual(message['type'], 'booking.event')
        self.assertEqual(message['event'], BOOKING_CREATED)
        self.assertEqual(message['room_id'], 5)
        self.assertEqual(message['payload'], {'booking': {'id': 1}})

    def test_publish_failures_are_logged_not_raised(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock(side_effect=RuntimeError('layer down'))

        with self.assertLogs('apps.notifications.publisher', level='ERROR') as logs:
            ChannelLayerPublisher(layer).publish(5, BOOKING_CREATED, {})

        self.assertIn('layer down', logs.output[0])

    def test_get_booking_publisher(self):
        self.assertIsInstance(get_booking_publisher(), ChannelLayerPublisher)

        with self.settings(BOOKING_EVENT_PUBLISHER='apps.notifications.publisher.NullPublisher'):
            self.assertIsInstance(get_booking_publisher(), NullPublisher)
