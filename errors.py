class LedgerError(ValueError):
    """Base for errors the caller can act on (bad input, unknown ids)."""


class InvalidDateFormat(LedgerError):
    pass


class InvalidCategory(LedgerError):
    pass


class InvalidType(LedgerError):
    pass


class InvalidInstallmentCount(LedgerError):
    pass


class TransactionNotFound(LedgerError):
    pass


class NotARecurringTransaction(LedgerError):
    """Raised by the simple-delete path for a transaction linked to a series.

    The caller should retry through series deletion with an explicit
    cleanup option.
    """


class NotARecurringTemplate(LedgerError):
    pass


class StoreError(RuntimeError):
    pass
