# exceptions.py
# Error taxonomy shared by the persistence core and the HTTP layer.


class RecipeStoreError(Exception):
    """
    Base class for conditions the recipe store reports to its callers.
    """


class RecordNotFound(RecipeStoreError):
    """
    The requested record does not exist (or the id was never valid).
    """

    def __init__(self, message: str = "record not found"):
        super().__init__(message)


class EditConflict(RecipeStoreError):
    """
    A versioned write matched no row: either the version is stale or the
    record was deleted in the meantime. Callers re-fetch and retry.
    """

    def __init__(self, message: str = "edit conflict"):
        super().__init__(message)


class OperationTimeout(RecipeStoreError):
    """
    A store operation ran past its deadline and was aborted. Transient.
    """

    def __init__(self, message: str = "database operation timed out"):
        super().__init__(message)


class FormatError(ValueError):
    """
    Raised for malformed duration input. Subclasses ValueError so pydantic
    reports it as an ordinary validation error.
    """
