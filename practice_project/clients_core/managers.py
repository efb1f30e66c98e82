from django.db import models
from django.db.models import Q


# -----------------------------------------
# Portfolio scoping for client records
# -----------------------------------------
class ClientQuerySet(models.QuerySet):
    def for_portfolio(self, portfolio_code):
        return self.filter(portfolio_code=portfolio_code)

    def active(self, portfolio_code=None):
        qs = self.filter(status="ACTIVE")
        if portfolio_code is not None:
            qs = qs.filter(portfolio_code=portfolio_code)
        return qs

    def search(self, query):
        # match the same fields staff type into the search box:
        # name, reference, email, companies house number
        query = (query or "").strip()
        if not query:
            return self
        return self.filter(
            Q(name__icontains=query)
            | Q(ref__icontains=query)
            | Q(main_email__icontains=query)
            | Q(registered_number__icontains=query)
        )
    # Enables query:
    # Client.objects.for_portfolio(2).search("homes")


class ClientManager(models.Manager):
    def get_queryset(self):
        return ClientQuerySet(self.model, using=self._db)

    def for_portfolio(self, portfolio_code):
        return self.get_queryset().for_portfolio(portfolio_code)

    def active(self, portfolio_code=None):
        return self.get_queryset().active(portfolio_code)

    def search(self, query):
        return self.get_queryset().search(query)


# -----------------------------------------
# Reference buckets, always read in letter order
# -----------------------------------------
class RefBucketQuerySet(models.QuerySet):
    def for_portfolio(self, portfolio_code):
        return self.filter(portfolio_code=portfolio_code).order_by("alpha")

    def with_capacity(self, max_index):
        # buckets whose next_index still fits in 3 digits
        return self.filter(next_index__lte=max_index)


class RefBucketManager(models.Manager):
    def get_queryset(self):
        return RefBucketQuerySet(self.model, using=self._db)

    def for_portfolio(self, portfolio_code):
        return self.get_queryset().for_portfolio(portfolio_code)
