"""
Penny Profit - Error Taxonomy
Base exception shared by every component. Specific errors live next to the code that raises them.
"""


class PennyProfitError(Exception):
    """Base class for all Penny Profit errors."""

    user_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str = "", user_message: str = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message
