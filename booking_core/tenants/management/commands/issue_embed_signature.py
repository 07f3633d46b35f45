# booking_core/tenants/management/commands/issue_embed_signature.py
from urllib.parse import urlencode

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from booking_core.tenants import signing
from booking_core.tenants.selectors import get_tenant_by_slug_or_none


class Command(BaseCommand):
    help = "Print the embed signature (and widget query string) for a clinic slug."

    def add_arguments(self, parser):
        parser.add_argument("slug")

    def handle(self, *args, **options):
        slug = signing.normalize_slug(options["slug"])

        if get_tenant_by_slug_or_none(slug=slug) is None:
            raise CommandError(f"No clinic with slug {slug!r}.")

        sig = signing.issue(slug)
        if not sig:
            raise CommandError("EMBED_SIGNING_SECRET is not configured.")

        query = urlencode({"clinic_slug": slug, "sig": sig})
        self.stdout.write(sig)
        self.stdout.write(self.style.SUCCESS(f"{settings.APP_BASE_URL}/embed/chat?{query}"))
