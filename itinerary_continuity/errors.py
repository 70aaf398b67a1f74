"""Gap-level failures. None of these abort processing of other gaps."""


class GapFillError(Exception):
    """Base class: the gap stays unfilled, which is always a valid outcome."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class InsufficientData(GapFillError):
    """A location cannot be resolved well enough to compare or search."""


class UnresolvableIdentifier(GapFillError):
    """An airport or location code required for a search is missing."""


class ProviderError(GapFillError):
    """Network, HTTP or payload failure from a search collaborator."""


class NoCandidates(GapFillError):
    """The search worked but nothing usable came back (timeouts land here too)."""


class OvernightSuppressed(GapFillError):
    """The gap spans sleep time and is intentionally left unfilled."""
