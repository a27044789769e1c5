class BrightXError(Exception):
    pass


class InvalidCredentialError(BrightXError):
    pass


class AuthError(BrightXError):
    pass


class InvalidOperationError(BrightXError):
    pass


class NotFoundError(BrightXError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class NoPendingConfirmationError(BrightXError):
    pass


class StorageWriteError(BrightXError):
    pass
