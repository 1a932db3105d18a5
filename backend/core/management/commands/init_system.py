from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from backend.core.models import Setting

User = get_user_model()


class Command(BaseCommand):
    help = 'Seed the default superadmin account and default settings (safe to run repeatedly)'

    def add_arguments(self, parser):
        parser.add_argument('--password', help='Password for the default superadmin (defaults to SUPERADMIN_PASSWORD)')

    def handle(self, *args, **options):
        username = settings.SUPERADMIN_USERNAME
        if User.objects.filter(username=username).exists():
            self.stdout.write(f'  Default user already exists: {username}')
        else:
            user = User(
                username=username,
                first_name='Admin',
                last_name='Super',
                email=settings.SUPERADMIN_EMAIL.lower(),
                role=User.ROLE_SUPERADMIN,
                is_staff=True,
                is_superuser=True,
            )
            user.set_password(options.get('password') or settings.SUPERADMIN_PASSWORD)
            user.save()
            self.stdout.write(self.style.SUCCESS(f'✓ Created default user: {username}'))

        created_count = 0
        for key, value, description in settings.DEFAULT_SETTINGS:
            _, created = Setting.objects.get_or_create(
                key=key,
                defaults={'value': value, 'description': description},
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'✓ Inserted default setting: {key}'))
            else:
                self.stdout.write(f'  Default setting already exists: {key}')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} settings created'
        ))
