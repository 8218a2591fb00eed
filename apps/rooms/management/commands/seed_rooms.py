# apps/rooms/management/commands/seed_rooms.py
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.rooms.models import Room

DEFAULT_ROOMS = [
    {
        'name': 'Reading Room A',
        'capacity': 5,
        'hourly_rate': Decimal('50.00'),
        'description': 'Cozy room perfect for small groups and study sessions',
    },
    {
        'name': 'Reading Room B',
        'capacity': 5,
        'hourly_rate': Decimal('50.00'),
        'description': 'Comfortable space with natural lighting',
    },
    {
        'name': 'Meeting Room C',
        'capacity': 10,
        'hourly_rate': Decimal('50.00'),
        'description': 'Spacious room ideal for larger groups and meetings',
    },
    {
        'name': 'Meeting Room D',
        'capacity': 10,
        'hourly_rate': Decimal('50.00'),
        'description': 'Modern room with premium amenities',
    },
]


class Command(BaseCommand):
    help = 'Create the default café rooms (existing rooms are matched by name)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--update',
            action='store_true',
            help='Overwrite capacity, rate and description of rooms that already exist',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for data in DEFAULT_ROOMS:
            defaults = {key: value for key, value in data.items() if key != 'name'}
            room, created = Room.objects.get_or_create(name=data['name'], defaults=defaults)
            if created:
                created_count += 1
                self.stdout.write(f"Created {room.name}")
            elif options['update']:
                for key, value in defaults.items():
                    setattr(room, key, value)
                room.save()
                self.stdout.write(f"Updated {room.name}")

        self.stdout.write(self.style.SUCCESS(f"Seeded rooms: {created_count} created"))
