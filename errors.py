# errors.py
# Startup problems are ConfigurationError and stop the process.
# Everything under TransferError is absorbed by the retry ladder.


class ConfigurationError(Exception):
    pass


class RecipientValidationError(ConfigurationError):
    def __init__(self, invalid, path=None):
        self.invalid = list(invalid)
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"{len(self.invalid)} invalid recipient address(es){where}: " + ", ".join(self.invalid))


class TransferError(Exception):
    pass


class LedgerConnectionError(TransferError):
    pass


class SubmissionError(TransferError):
    pass


class ConfirmationError(TransferError):
    pass
