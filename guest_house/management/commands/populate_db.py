from django.core.management.base import BaseCommand
from django.core.management.color import no_style
from django.db import connection
from guest_house.catalog import ROOMS
from guest_house.conf import setting
from guest_house.models import Room


class Command(BaseCommand):
    help = 'Populate database with the guest house room catalog'

    def add_arguments(self, parser):
        parser.add_argument('--reset', action='store_true',
                            help='Overwrite rates and details of rooms that already exist')

    def handle(self, *args, **options):
        currency = setting('CURRENCY')
        for room_data in ROOMS:
            # Seeded rooms keep their catalog id, the key of the fare table.
            defaults = {key: value for key, value in room_data.items() if key != 'id'}
            if options['reset']:
                room, created = Room.objects.update_or_create(pk=room_data['id'], defaults=defaults)
            else:
                room, created = Room.objects.get_or_create(pk=room_data['id'], defaults=defaults)

            if created:
                self.stdout.write(f'Created room: {room.name} - {currency} {room.full_board} ({room.capacity} guests)')
            elif options['reset']:
                self.stdout.write(f'Updated room: {room.name}')
            else:
                self.stdout.write(f'Room {room.pk} ({room.name}) already exists')

        # Explicit ids do not advance the primary key sequence on every backend.
        with connection.cursor() as cursor:
            for sql in connection.ops.sequence_reset_sql(no_style(), [Room]):
                cursor.execute(sql)

        self.stdout.write(
            self.style.SUCCESS('Successfully populated database with room catalog')
        )
