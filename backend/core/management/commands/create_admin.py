from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model

User = get_user_model()


class Command(BaseCommand):
    help = 'Create an admin user, or promote an existing user to the admin role'

    def add_arguments(self, parser):
        parser.add_argument('email', type=str, help='Email address of the admin account')
        parser.add_argument('--name', type=str, default='Administrator', help='Display name for a new account')
        parser.add_argument('--password', type=str, help='Password for a new account (required when creating)')
        parser.add_argument(
            '--staff',
            action='store_true',
            help='Also grant Django admin site access (is_staff/is_superuser)',
        )

    def handle(self, *args, **options):
        email = options['email'].strip()
        staff = options.get('staff', False)

        user = User.objects.filter(email__iexact=email).first()
        if user:
            user.role = User.ROLE_ADMIN
            if staff:
                user.is_staff = True
                user.is_superuser = True
            user.save()
            self.stdout.write(self.style.SUCCESS(f'✓ Promoted {user.email} to admin'))
            return

        password = options.get('password')
        if not password:
            raise CommandError('--password is required when creating a new admin')

        user = User.objects.create_user(
            email=email,
            password=password,
            name=options['name'],
            role=User.ROLE_ADMIN,
            is_staff=staff,
            is_superuser=staff,
        )
        self.stdout.write(self.style.SUCCESS(f'✓ Created admin: {user.email}'))
