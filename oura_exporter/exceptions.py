"""Custom exceptions for the Oura exporter."""


class OuraExporterError(Exception):
    """Base exception for all exporter errors."""

    def __init__(self, message: str, person: str | None = None):
        self.message = message
        self.person = person
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert exception to a loggable error payload."""
        return {
            "error": {
                "code": self.__class__.__name__.replace("Error", "").lower(),
                "message": self.message,
                "person": self.person,
            }
        }


class ParsingError(OuraExporterError):
    """A vendor date or timestamp string could not be parsed."""

    DATE_PARSING = "DateParsing"
    TIMESTAMP_PARSING = "TimestampParsing"

    def __init__(self, kind: str, value: str, reason: str):
        self.kind = kind
        self.value = value
        self.reason = reason
        label = "date" if kind == self.DATE_PARSING else "timestamp"
        super().__init__(f"Cannot parse Oura API {label} '{value}': {reason}")


class UnknownEnumVariantError(OuraExporterError):
    """A vendor enum literal is not one of the known variants."""

    def __init__(self, enum_name: str, variant: str):
        self.enum_name = enum_name
        self.variant = variant
        super().__init__(f"Unknown {enum_name}: '{variant}'")


class MissingSubResourceError(OuraExporterError):
    """A sleep document lacks a sub-block required for one derivation."""

    what = "data"

    def __init__(self, sleep_id: str):
        self.sleep_id = sleep_id
        super().__init__(f"No {self.what} found for sleep document with id: '{sleep_id}'")


class NoReadinessDataFoundError(MissingSubResourceError):
    what = "readiness data"


class NoReadinessScoreFoundError(MissingSubResourceError):
    what = "readiness score"


class NoHeartRateDataFoundError(MissingSubResourceError):
    what = "heart rate data"


class NoHrvDataFoundError(MissingSubResourceError):
    what = "heart rate variability data"


class NoSleepPhaseDataFoundError(MissingSubResourceError):
    what = "sleep phase data"


class NonFiniteValueError(OuraExporterError):
    """A measurement value is NaN or infinite and cannot become a sample."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Non-finite measurement value: {value}")


class FetchError(OuraExporterError):
    """Vendor API errors (transport failures, non-2xx responses, bad bodies)."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        error: str | None = None,
        person: str | None = None,
    ):
        self.url = url
        self.status_code = status_code
        self.error = error
        super().__init__(message, person)

    @classmethod
    def from_response(cls, url: str, status_code: int, body: str) -> "FetchError":
        """Build the error for a non-2xx response."""
        return cls(
            f'Received error response from Oura API when requesting url: {url}. '
            f'Error: "{body}", status: {status_code}',
            url=url,
            status_code=status_code,
            error=body,
        )


class SerializationError(OuraExporterError):
    """A record could not be encoded into a pub/sub payload."""


class SinkError(OuraExporterError):
    """A time-series or pub/sub sink rejected a batch."""


class ConfigurationError(OuraExporterError):
    """Configuration file missing, unreadable, or invalid."""
