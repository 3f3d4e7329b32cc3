import logging


class ReplaceFilter(logging.Filter):
    """Replaces a secret in formatted records"""

    def __init__(self, old: str, new: str = "") -> None:
        super().__init__("ReplaceFilter")
        self.old = old
        self.new = new

    def filter(self, record):
        msg = record.getMessage()

        if self.old and self.old in msg:
            record.msg = msg.replace(self.old, self.new)
            record.args = None
        return True
