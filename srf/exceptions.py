class InvariantViolation(RuntimeError):
    """
    Raised when an internal precondition of the tree growing algorithm does not hold.

    Signals a logic bug rather than a recoverable condition, so it is never caught inside the package.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)
