from weather_gateway.models import ErrorResponse


class GatewayError(Exception):
    """Base error surfaced to callers of the gateway"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return ErrorResponse(error=self.message).to_payload()


class InvalidRequest(GatewayError):
    """Caller input is unusable; never retried"""

    status_code = 400


class UnknownOperation(GatewayError):
    status_code = 404


class FormatError(GatewayError):
    """An accepted provider payload lacks the blocks needed to normalize it"""

    status_code = 500


class UpstreamError(GatewayError):
    """The weather provider could not be used and simulation is disabled"""

    status_code = 502
