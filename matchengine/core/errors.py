"""Exception types raised by the matching engine."""


class MatchEngineError(Exception):
    """Base class for engine errors."""


class NotFoundError(MatchEngineError, LookupError):
    """A single entity looked up by id does not exist."""

    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")
