class CardSenseError(Exception):
    """Base class for recoverable CardSense errors"""


class ValidationError(CardSenseError, ValueError):
    """User input rejected by an editor"""


class CardNotFoundError(CardSenseError, LookupError):
    """No card matches the requested id or last 4 digits"""


class TransactionNotFoundError(CardSenseError, LookupError):
    """No transaction with the requested id"""


class CardInUseError(CardSenseError):
    """Card still has transactions attached"""


class SmsParseError(CardSenseError):
    """Classification service failed or returned an unusable answer"""


class IngestionBusyError(CardSenseError):
    """An SMS is already being parsed"""
