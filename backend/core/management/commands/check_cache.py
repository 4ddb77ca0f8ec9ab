"""
Django management command to check the cache configuration.

Usage:
    python manage.py check_cache
"""
from django.core.management.base import BaseCommand
from django.core.cache import cache
from django.conf import settings

from backend.core.cache_utils import make_cache_key, invalidate_cache_pattern


class Command(BaseCommand):
    help = 'Check cache configuration and verify it is working'

    def handle(self, *args, **options):
        self.stdout.write("=" * 60)
        self.stdout.write(self.style.SUCCESS("Cache Configuration Check"))
        self.stdout.write("=" * 60)

        self.stdout.write(f"\n1. Cache Backend: {settings.CACHES['default']['BACKEND']}")
        self.stdout.write(f"2. Cache Location: {settings.CACHES['default'].get('LOCATION', 'N/A')}")

        self.stdout.write("\n3. Cache Operations:")
        self.stdout.write("-" * 60)

        try:
            cache.set('check_key', 'check_value', 60)
            value = cache.get('check_key')
            if value == 'check_value':
                self.stdout.write(self.style.SUCCESS("Cache SET/GET: OK"))
            else:
                self.stdout.write(self.style.ERROR(f"Cache GET: Failed (got: {value})"))

            cache.delete('check_key')
            if cache.get('check_key') is None:
                self.stdout.write(self.style.SUCCESS("Cache DELETE: OK"))
            else:
                self.stdout.write(self.style.ERROR("Cache DELETE: Failed"))

            self.stdout.write("\n4. Dashboard key invalidation:")
            self.stdout.write("-" * 60)
            key = make_cache_key("dashboard_kpis", "check")
            cache.set(key, {'ok': True}, 60)
            invalidate_cache_pattern("dashboard_kpis")
            if cache.get(key) is None:
                self.stdout.write(self.style.SUCCESS("Pattern invalidation: OK"))
            else:
                self.stdout.write(self.style.ERROR("Pattern invalidation: Failed"))
        except Exception as e:
            self.stdout.write(self.style.ERROR(f"Cache error: {e}"))
            self.stdout.write("   1. Check REDIS_URL in the .env file")
            self.stdout.write("   2. Make sure the Redis server is running")
