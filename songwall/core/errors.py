"""Errors a write can end with. Each maps to one HTTP status."""


class SongWallError(Exception):
    status_code = 500

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class ValidationError(SongWallError):
    """Malformed or inconsistent write request. Never partially applied."""
    status_code = 400


class NotFoundError(SongWallError):
    status_code = 404


class ConflictError(SongWallError):
    """Concurrent writers kept winning until the retry budget ran out."""
    status_code = 409


class PersistenceError(SongWallError):
    """Durable write failed; the in-memory wall was left unchanged."""
    status_code = 500


class UnavailableError(SongWallError):
    """Writes are no longer accepted (server shutting down)."""
    status_code = 503
