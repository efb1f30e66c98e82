from collections import Counter

from django.conf import settings
from django.core.management.base import BaseCommand

from clients_core.models import Client, RefBucket
from clients_core.services.references import parse_client_ref


class Command(BaseCommand):
    help = "List reference buckets per portfolio with how many slots are left."

    def add_arguments(self, parser):
        parser.add_argument("--portfolio", type=int, default=None, help="Only this portfolio code")

    def handle(self, *args, **options):
        max_index = getattr(settings, "CLIENT_REF_MAX_INDEX", 999)
        buckets = RefBucket.objects.all()
        clients = Client.objects.all()
        if options["portfolio"] is not None:
            buckets = buckets.filter(portfolio_code=options["portfolio"])
            clients = clients.for_portfolio(options["portfolio"])

        if not buckets.exists():
            self.stdout.write(self.style.WARNING("No reference buckets yet."))
            return

        # clients per (portfolio, letter), hand-assigned refs included
        used = Counter()
        for ref in clients.values_list("ref", flat=True).iterator():
            parsed = parse_client_ref(ref)
            if parsed is not None:
                used[parsed[:2]] += 1

        for bucket in buckets.order_by("portfolio_code", "alpha"):
            left = max(max_index - bucket.next_index + 1, 0)
            count = used[(bucket.portfolio_code, bucket.alpha)]
            line = f"{bucket.portfolio_code}{bucket.alpha}  next={bucket.next_index:<5} left={left:<4} clients={count}"
            self.stdout.write(self.style.ERROR(line) if left == 0 else line)

        open_count = buckets.with_capacity(max_index).count()
        self.stdout.write(self.style.NOTICE(f"{open_count} of {buckets.count()} buckets have room left"))
