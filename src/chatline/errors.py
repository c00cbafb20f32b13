class ChatError(Exception):
    """A failure that ends the current turn."""


class ChatEnvironmentError(ChatError):
    pass


class RequestError(ChatError):
    pass


class HttpError(ChatError):
    def __init__(self, status: int):
        super().__init__(f"HTTP {status}")
        self.status = status


class TransportError(ChatError):
    def __init__(self, cause: BaseException):
        super().__init__(str(cause) or cause.__class__.__name__)
        self.cause = cause


class SessionBusyError(RuntimeError):
    pass
