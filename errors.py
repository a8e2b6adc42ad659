"""Error taxonomy for the OpenURL -> SFX pipeline."""

from __future__ import annotations


class SFXError(RuntimeError):
    """Base class for every failure raised while resolving links through SFX."""

    def wrap(self, context: str) -> SFXError:
        """Return a copy of this error, same class and attributes, with ``context`` prepended."""
        wrapped = type(self).__new__(type(self))
        wrapped.__dict__.update(self.__dict__)
        wrapped.args = (f"{context}: {self}",)
        return wrapped


class InvalidRequestError(SFXError):
    """The inbound OpenURL parameters cannot be turned into a request."""


class NoRecognizedFieldsError(InvalidRequestError):
    pass


class MissingGenreError(InvalidRequestError):
    pass


class InvalidGenreError(InvalidRequestError):
    def __init__(self, candidates: list[str], message: str | None = None) -> None:
        self.candidates = list(candidates)
        super().__init__(message or f"genre not in list of allowed genres: {self.candidates}")


class RenderError(SFXError):
    """The context object XML could not be produced."""


class InvalidXMLError(RenderError):
    pass


class ResolverUnavailableError(SFXError):
    """The SFX server could not be reached."""


class InvalidResponseError(SFXError):
    """SFX answered, but not with a usable multi-object document."""


class NoContextObjectError(InvalidResponseError):
    pass
