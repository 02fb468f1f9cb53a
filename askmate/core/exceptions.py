class ClassCodeAllocationError(Exception):
    """No unused class code was found within the attempt budget."""

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique class code after {attempts} attempts.")
        self.attempts = attempts


class UploadRejected(Exception):
    """An uploaded file breaks the class's upload settings."""
