class InsufficientBalanceError(ValueError): ...


class PlatformInsolvencyError(RuntimeError): ...


class ConfigurationError(ValueError): ...


class GameNotFoundError(LookupError): ...


class AmbiguousTransactionError(LookupError): ...
