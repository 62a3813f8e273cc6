class TokenShieldError(Exception):
    pass


class ConfigurationError(TokenShieldError):
    """Fatal misconfiguration, raised at start-up."""


class UnsupportedChainError(ConfigurationError):
    pass


class IndexerError(TokenShieldError):
    """TheGraph query failed or returned GraphQL errors."""


class ExplorerError(TokenShieldError):
    """Etherscan returned a non-success status."""


class MoralisError(TokenShieldError):
    pass


class TwitterApiError(TokenShieldError):
    """TwitterAPI.io error."""


class LLMApiError(TokenShieldError):
    """Chat-completion provider rejected the request."""

    def __init__(
        self,
        message: str,
        *,
        error_type: str | None = None,
        code: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.status = status


class ForkStartupError(TokenShieldError):
    """Anvil exited early or never accepted a connection."""


class TransactionRevertedError(TokenShieldError):
    """A simulated transaction was mined with status 0."""

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
