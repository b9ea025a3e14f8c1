class TuneDetectiveError(Exception):
    """Base class for errors raised inside tunedetective."""


class ModelCallError(TuneDetectiveError):
    """The model provider could not be reached or refused the request."""


class ModelResponseError(TuneDetectiveError):
    """The model answered, but not with JSON matching the expected schema."""


class EmptyResultError(TuneDetectiveError):
    """The call succeeded but produced nothing usable."""


class UploadError(TuneDetectiveError):
    """An uploaded file is missing, empty or of a type we do not accept."""
