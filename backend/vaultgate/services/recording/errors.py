class RecordingError(Exception):
    """A recording operation failed against the database."""


class SchemaInitError(RecordingError):
    """The recording tables could not be created. Fatal at startup."""


class PlayerLookupError(RecordingError):
    """A player row vanished between the conflicting insert and the lookup."""

    def __init__(self, email: str):
        super().__init__(f"player row for {email!r} not found after conflicting insert")
        self.email = email
