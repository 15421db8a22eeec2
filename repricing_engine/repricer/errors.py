class RepricingError(Exception):
    """Base class for errors raised by the repricing core."""


class ValidationError(RepricingError):
    """Request rejected before any state change."""


class NotFoundError(RepricingError):
    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class InvalidTransitionError(RepricingError):
    def __init__(self, proposal_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move proposal {proposal_id} from '{current}' to '{target}'"
        )
        self.proposal_id = proposal_id
        self.current = current
        self.target = target


class ConcurrencyConflictError(RepricingError):
    def __init__(self, proposal_id: str, expected_version: int, actual_version: int | None):
        super().__init__(
            f"Proposal {proposal_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.proposal_id = proposal_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class ExternalServiceError(RepricingError):
    """A collaborator (channel API, database) failed or timed out."""
