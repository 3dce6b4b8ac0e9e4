"""Error taxonomy for the note generation pipeline.

Only MissingParameterError and resolver failures are expected to reach the
caller. The other kinds are raised by upstream clients and absorbed by the
stage that owns them, which substitutes a deterministic fallback value.
"""


class NoteGenerationError(Exception):
    """Base class for pipeline errors.

    Attributes:
        user_message: Short message suitable for showing to an end user.
    """

    user_message = "An error occurred while generating the note."


class MissingParameterError(NoteGenerationError):
    """A required input (video id or API key) was not supplied."""

    user_message = "A required parameter is missing."

    def __init__(self, parameter: str):
        super().__init__(f"Missing required parameter: {parameter}")
        self.parameter = parameter


class UpstreamUnavailableError(NoteGenerationError):
    """Network failure or non-success status from an external service."""

    user_message = "An external service could not be reached."

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyUpstreamResponseError(NoteGenerationError):
    """The call succeeded but returned no usable candidate or content."""

    user_message = "An external service returned an empty response."


class SafetyBlockedError(NoteGenerationError):
    """The text-generation service refused to answer (finishReason SAFETY)."""

    user_message = "The response was blocked by the content safety filter."


class MalformedOutputError(NoteGenerationError):
    """Generated text did not contain a parseable JSON object."""

    user_message = "The AI response could not be understood."
