class SampleReviewError(Exception):
    """Base class for failures reported to API callers."""

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(SampleReviewError):
    status_code = 400


class NotFound(SampleReviewError):
    status_code = 404


class ReferencedSampleMissing(SampleReviewError):
    """The sample a review points at disappeared before the write landed."""

    status_code = 400

    def __init__(self, message='Referenced sample does not exist', details=None):
        super().__init__(message, details)


class PersistenceError(SampleReviewError):
    status_code = 500
