# apps/bookings/availability.py
"""
Room availability checks.

Two intervals [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1, so a
booking that ends exactly when another starts is not a conflict.
"""
from django.db import DEFAULT_DB_ALIAS

from apps.rooms.models import Room
from .exceptions import InvalidInterval, RoomNotFound
from .models import Reservation


def find_conflicting_reservations(room_id, start, end, using=DEFAULT_DB_ALIAS):
    """Active reservations on ``room_id`` that overlap [start, end)."""
    return Reservation.objects.using(using).filter(
        room_id=room_id,
        status__in=Reservation.ACTIVE_STATUSES,
        start_time__lt=end,
        end_time__gt=start,
    ).order_by('start_time')


def get_active_room(room_id, using=DEFAULT_DB_ALIAS, lock=False):
    rooms = Room.objects.using(using).filter(pk=room_id, is_active=True)
    if lock:
        rooms = rooms.select_for_update()
    room = rooms.first()
    if room is None:
        raise RoomNotFound()
    return room


def check_room_availability(room_id, start, end, using=DEFAULT_DB_ALIAS):
    """
    Look up an active room and the reservations blocking [start, end).

    Returns ``(room, conflicts)`` where ``conflicts`` is a list; the room is
    free when it is empty.
    """
    if end <= start:
        raise InvalidInterval()
    room = get_active_room(room_id, using=using)
    return room, list(find_conflicting_reservations(room.pk, start, end, using=using))
