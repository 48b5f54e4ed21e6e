"""
Management command to create a tenant and its first admin user
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from backend.core.models import Tenant

User = get_user_model()


class Command(BaseCommand):
    help = "Creates a tenant (pharmacy) and its admin user; safe to run repeatedly"

    def add_arguments(self, parser):
        parser.add_argument('--name', required=True, help='Organization name')
        parser.add_argument('--subdomain', required=True, help='Unique tenant subdomain')
        parser.add_argument('--admin-email', required=True, help='Email of the admin user')
        parser.add_argument('--admin-password', required=True, help='Password of the admin user')
        parser.add_argument('--first-name', default='Admin', help='Admin first name')
        parser.add_argument('--last-name', default='User', help='Admin last name')

    def handle(self, *args, **options):
        subdomain = options['subdomain'].strip().lower()
        email = options['admin_email'].strip().lower()

        with transaction.atomic():
            tenant, created = Tenant.objects.get_or_create(
                subdomain=subdomain,
                defaults={'name': options['name']},
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created tenant: {tenant.name} ({tenant.subdomain})'))
            else:
                self.stdout.write(self.style.WARNING(f'Tenant already exists: {tenant.name} ({tenant.subdomain})'))

            existing = User.objects.filter(email=email).first()
            if existing is not None:
                if existing.tenant_id != tenant.id:
                    raise CommandError(f'User {email} already belongs to another tenant')
                self.stdout.write(self.style.WARNING(f'Admin user already exists: {email}'))
                return

            User.objects.create_user(
                email=email,
                password=options['admin_password'],
                tenant=tenant,
                role='admin',
                first_name=options['first_name'],
                last_name=options['last_name'],
            )
            self.stdout.write(self.style.SUCCESS(f'Created admin user: {email}'))
