from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

User = get_user_model()


class Command(BaseCommand):
    help = 'Create the default admin, vendedor and producao accounts'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='123456', help='Password for newly created accounts')
        parser.add_argument('--reset-password', action='store_true', help='Also reset the password of existing accounts')

    def handle(self, *args, **options):
        users_config = [
            {'email': 'admin@marmoraria.com', 'name': 'Administrador', 'role': 'admin', 'is_superuser': True, 'is_staff': True},
            {'email': 'vendedor@marmoraria.com', 'name': 'Vendedor', 'role': 'vendedor'},
            {'email': 'producao@marmoraria.com', 'name': 'Produção', 'role': 'producao'},
        ]

        created_count = 0
        updated_count = 0

        for config in users_config:
            email = config.pop('email')
            user = User.objects.filter(email=email).first()

            if user is None:
                User.objects.create_user(email=email, password=options['password'], **config)
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'Created user: {email} ({config["role"]})'))
                continue

            for field, value in config.items():
                setattr(user, field, value)
            if options['reset_password']:
                user.set_password(options['password'])
            user.save()
            updated_count += 1
            self.stdout.write(f'Updated user: {email}')

        self.stdout.write(self.style.SUCCESS(
            f'\nSummary: {created_count} users created, {updated_count} users updated'
        ))
