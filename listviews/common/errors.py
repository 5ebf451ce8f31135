"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for list-view pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class ContractError(PipelineError):
    """Raised when a caller breaks the data-source parameter contract."""

    error_code = "CONTRACT_ERROR"


class FetchError(PipelineError):
    """Raised at the fetcher boundary for network, HTTP or payload failures."""

    error_code = "FETCH_ERROR"
