class RegistrationError(Exception):
    """Base class for every failure the registration layer knows how to name."""

    code = "registration_error"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class Unauthenticated(RegistrationError):
    code = "unauthenticated"


class Forbidden(RegistrationError):
    code = "forbidden"


class FetchFailure(RegistrationError):
    code = "fetch_failed"


class WriteFailure(RegistrationError):
    code = "write_failed"


class DocumentNotFound(RegistrationError):
    code = "not_found"

    def __init__(self, collection: str, key: str):
        super().__init__(f"No document '{key}' in collection '{collection}'")
        self.collection = collection
        self.key = key


class InitializationFault(RegistrationError):
    """Store operations were used outside of an active registration scope."""

    code = "initialization_fault"
