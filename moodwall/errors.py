"""Error taxonomy shared by the codec, the sheet store and the card service."""


class MoodwallError(RuntimeError):
    pass


class ValidationError(MoodwallError):
    pass


class InvalidImage(ValidationError):
    pass


class CapacityError(MoodwallError):
    pass


class SizeError(MoodwallError):
    pass


class ImageTooLarge(SizeError):
    def __init__(self, message: str = "image too large to compress"):
        super().__init__(message)


class NotFoundError(MoodwallError):
    pass


class StorageUnavailable(MoodwallError):
    def __init__(self, message: str = "storage unavailable"):
        super().__init__(message)


class StorageTransportError(MoodwallError):
    pass
