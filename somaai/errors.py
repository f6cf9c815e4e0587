"""Error taxonomy shared by the client, the pipeline and the HTTP layer."""


class SomaError(Exception):
    """Base class for every error the service raises on purpose."""

    #: Generic message safe to show to end users.
    public_message = "Something went wrong"
    status_code = 500


class InvalidInput(SomaError):
    public_message = "Invalid input"
    status_code = 400

    def __init__(self, message: str = "symptom required and must be a non-empty string"):
        super().__init__(message)
        self.public_message = message


class MissingCredential(SomaError):
    public_message = "Service temporarily unavailable"
    status_code = 500


class UpstreamUnavailable(SomaError):
    public_message = "AI service temporarily unavailable"
    status_code = 503


class UpstreamError(SomaError):
    """The completion endpoint answered with a 4xx/5xx status."""

    def __init__(self, status: int, message: str = ""):
        super().__init__(message or f"Upstream returned HTTP {status}")
        self.status = status

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.status == 429:
            return 429
        if 400 <= self.status < 500:
            return 400
        return 500

    @property
    def public_message(self) -> str:  # type: ignore[override]
        if self.status == 429:
            return "Rate limit exceeded, please try again later"
        if 400 <= self.status < 500:
            return "Invalid request to AI service"
        return "Analysis service temporarily unavailable"


class NoJsonFound(SomaError):
    public_message = "Could not process AI output"


class MalformedJson(NoJsonFound):
    """Delimiters were found but the enclosed text did not parse."""


class AnalysisFailed(SomaError):
    """The mandatory structured pass failed; ``cause`` holds the reason."""

    def __init__(self, cause: Exception, raw: str | None = None):
        super().__init__(f"Failed to produce structured analysis: {cause}")
        self.cause = cause
        self.raw = raw

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return getattr(self.cause, "status_code", 500)

    @property
    def public_message(self) -> str:  # type: ignore[override]
        if isinstance(self.cause, SomaError):
            return self.cause.public_message
        return "Analysis failed"
