"""Custom exception classes for the gateway."""

from typing import Optional


class NitroException(Exception):
    """
    Base exception class for all chunked-storage errors.
    """
    pass


class InputError(NitroException):
    """
    Raised for empty input, a malformed prefix or an unusable part size.
    """
    pass


class UnsupportedSplitModeError(InputError):
    """
    Raised when a split mode other than split-by-size is requested.
    """
    pass


class ConfigurationError(NitroException):
    """
    Raised when the channel list is missing or contains no endpoints.
    """
    pass


class NameConflictError(NitroException):
    """
    Raised when a part name is already recorded in the target directory.
    """

    def __init__(self, part_name: str, directory_id: int):
        self.part_name = part_name
        self.directory_id = directory_id
        super().__init__(
            f"File part '{part_name}' already exists in directory {directory_id}. "
            f"Please use a different prefix or delete the existing parts."
        )


class ChannelUnavailableError(NitroException):
    """
    Raised when no upload channel cleared its cooldown within the configured bound.
    """
    pass


class UploadError(NitroException):
    """
    Raised when a channel rejects an upload.
    """
    pass


class MalformedResponseError(UploadError):
    """
    Raised when a successful upload response lacks the channel or message id.
    """
    pass


class PartNotFoundError(NitroException):
    """
    Raised when no usable parts are recorded for a filename and directory.
    """
    pass


class RetrieverError(NitroException):
    """
    Raised when stored location ids cannot be resolved to a fetch URL.
    """
    pass


class CatalogError(NitroException):
    """
    Raised when the part catalog fails to read or write.
    """
    pass


class FetchError(NitroException):
    """
    Raised when a part could not be fetched during reassembly.
    """

    def __init__(
        self,
        part_index: int,
        part_name: str,
        attempts: int,
        last_error: Optional[str] = None,
    ):
        self.part_index = part_index
        self.part_name = part_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to fetch part {part_index} ({part_name}) after {attempts} attempt(s): {last_error}"
        )
