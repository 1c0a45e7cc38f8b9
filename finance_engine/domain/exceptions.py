"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidSnapshotError(DomainException):
    """Snapshot payload could not be normalized into engine inputs"""

    def __init__(self, engine: str, detail: str):
        super().__init__(f"Invalid {engine} snapshot: {detail}")
        self.engine = engine
        self.detail = detail
