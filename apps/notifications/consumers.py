# apps/notifications/consumers.py - WebSocket consumer for room booking updates
import json
from channels.generic.websocket import AsyncWebsocketConsumer
from django.utils import timezone
import logging

from .publisher import room_group_name

logger = logging.getLogger(__name__)


class RoomEventsConsumer(AsyncWebsocketConsumer):
    """
    Clients connect once and join the rooms they are looking at:

        {"type": "join_room", "room_id": 3}
        {"type": "leave_room", "room_id": 3}
        {"type": "heartbeat"}

    Booking events arrive as {"type": "booking-created", "roomId": 3, ...}.
    Nothing is replayed: events published while a client is not joined are lost.
    """

    async def connect(self):
        self.joined_groups = set()
        await self.accept()
        logger.info(f"Booking WebSocket connected: {self.channel_name}")

    async def disconnect(self, close_code):
        for group in self.joined_groups:
            await self.channel_layer.group_discard(group, self.channel_name)
        self.joined_groups.clear()
        logger.info(f"Booking WebSocket disconnected: {self.channel_name}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            message = json.loads(text_data or '')
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON received: {e}")
            await self.send_error('Invalid JSON')
            return

        message_type = message.get('type')
        if message_type == 'join_room':
            await self.join_room(message.get('room_id'))
        elif message_type == 'leave_room':
            await self.leave_room(message.get('room_id'))
        elif message_type == 'heartbeat':
            await self.send(text_data=json.dumps({
                'type': 'heartbeat_ack',
                'timestamp': timezone.now().isoformat()
            }))
        else:
            logger.warning(f"Unknown message type: {message_type}")
            await self.send_error(f'Unknown message type: {message_type}')

    async def join_room(self, room_id):
        room_id = self.parse_room_id(room_id)
        if room_id is None:
            await self.send_error('room_id must be a positive integer')
            return

        group = room_group_name(room_id)
        await self.channel_layer.group_add(group, self.channel_name)
        self.joined_groups.add(group)
        await self.send(text_data=json.dumps({'type': 'joined', 'roomId': room_id}))
        logger.info(f"{self.channel_name} joined room {room_id}")

    async def leave_room(self, room_id):
        room_id = self.parse_room_id(room_id)
        if room_id is None:
            await self.send_error('room_id must be a positive integer')
            return

        group = room_group_name(room_id)
        await self.channel_layer.group_discard(group, self.channel_name)
        self.joined_groups.discard(group)
        await self.send(text_data=json.dumps({'type': 'left', 'roomId': room_id}))

    async def send_error(self, message):
        await self.send(text_data=json.dumps({'type': 'error', 'message': message}))

    @staticmethod
    def parse_room_id(value):
        try:
            room_id = int(value)
        except (TypeError, ValueError):
            return None
        return room_id if room_id > 0 else None

    # Channel layer event handlers
    async def booking_event(self, event):
        await self.send(text_data=json.dumps({
            'type': event['event'],
            'roomId': event['room_id'],
            **event['payload'],
            'timestamp': event['timestamp'],
        }))
