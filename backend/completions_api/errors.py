class AIServiceError(Exception):
    """Upstream model call failed; the service falls back to the mock provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(f"AI service error: {message}")
        self.status_code = status_code
