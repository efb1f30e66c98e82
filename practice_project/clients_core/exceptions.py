class AllocationExhausted(Exception):
    """Raised when no free client reference could be found for a portfolio."""

    def __init__(self, portfolio_code, attempts=None, message=None):
        self.portfolio_code = portfolio_code
        self.attempts = attempts
        super().__init__(
            message or f"Unable to generate client identifier for portfolio {portfolio_code}"
        )


class BucketCreateConflict(Exception):
    """Raised when another transaction created the same (portfolio, letter) bucket first."""

    def __init__(self, portfolio_code, alpha):
        self.portfolio_code = portfolio_code
        self.alpha = alpha
        super().__init__(f"Bucket {portfolio_code}{alpha} already exists")


class ClientReferenceTaken(Exception):
    """Raised when a supplied client reference already belongs to another client."""

    def __init__(self, ref):
        self.ref = ref
        super().__init__(f"Client reference {ref} already exists")
