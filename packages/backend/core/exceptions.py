"""Model management and model service exceptions."""


class ModelError(Exception):
    """Base model management error."""
    pass


class ModelNotFoundError(ModelError):
    """Model id is not in the catalog."""

    def __init__(self, model_id: str):
        super().__init__(f"Model {model_id} not found")
        self.model_id = model_id


class ModelAlreadyDownloadedError(ModelError):
    """Model file is already present on disk."""

    def __init__(self, model_id: str):
        super().__init__(f"Model {model_id} is already downloaded")
        self.model_id = model_id


class ModelNotDownloadedError(ModelError):
    """Operation requires a downloaded model."""

    def __init__(self, model_id: str):
        super().__init__(f"Model {model_id} is not downloaded")
        self.model_id = model_id


class MissingDownloadUrlError(ModelError):
    """Catalog entry has no source URL."""

    def __init__(self, model_id: str):
        super().__init__(f"No download URL available for model {model_id}")
        self.model_id = model_id


class DownloadInProgressError(ModelError):
    """A transfer for this model id is already running."""

    def __init__(self, model_id: str):
        super().__init__(f"Model {model_id} is already being downloaded")
        self.model_id = model_id


class DownloadError(ModelError):
    """Transfer failed mid-download."""
    pass


class DownloadCancelledError(DownloadError):
    """Transfer was cancelled via cancel_download()."""
    pass


class ModelServiceError(Exception):
    """Base model service error."""
    pass


class ModelUnavailableError(ModelServiceError):
    """Service is not initialized or its backend is not reachable."""
    pass


class ProviderError(ModelServiceError):
    """Remote provider call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
