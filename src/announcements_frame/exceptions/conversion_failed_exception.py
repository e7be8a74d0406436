from typing import Optional

from announcements_frame.exceptions import announcements_exception


class ConversionFailedException(announcements_exception.AnnouncementsException):

    def __init__(self, source: str, message: str = None, stderr: Optional[str] = None):
        self.source = source
        self.stderr = stderr
        self.message = f"Could not convert {source}."
        if message:
            self.message = f"{self.message} {message}"
        super().__init__(self.message)
