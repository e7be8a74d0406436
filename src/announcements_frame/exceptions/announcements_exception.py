class AnnouncementsException(Exception):
    """Base class for errors raised by the announcements frame."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)
