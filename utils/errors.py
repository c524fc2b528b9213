"""
Exceptions shared by the models, services and the CLI.
"""


class ValidationError(ValueError):
    """Raised when a recurrence rule or recurring item is malformed."""
    pass


class ItemNotFoundError(LookupError):
    """Raised when an operation references an unknown recurring item id."""

    def __init__(self, item_id: str):
        super().__init__(f"Recurring item not found: {item_id}")
        self.item_id = item_id


class GenerationError(RuntimeError):
    """A sink or repository call failed while generating one item."""

    def __init__(self, item_id: str, due_date, cause: Exception):
        where = f" on {due_date.isoformat()}" if due_date else ""
        super().__init__(f"Generation failed for {item_id}{where}: {cause}")
        self.item_id = item_id
        self.due_date = due_date
        self.cause = cause
