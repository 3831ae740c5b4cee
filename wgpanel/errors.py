class WgPanelError(Exception):
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ConfigurationError(WgPanelError):
    def __init__(self, interface, available, message=None):
        self.interface = interface
        self.available = list(available)
        super().__init__(message or (
            f"WireGuard interface '{interface}' not found, "
            f"available interfaces: {', '.join(self.available) or '(none)'}"
        ))


class ValidationError(WgPanelError):
    status = 400


class MissingFieldError(ValidationError):
    def __init__(self, field):
        self.field = field
        super().__init__(f"Field '{field}' missing from request body")


class ConflictError(WgPanelError):
    status = 409


class NotFoundError(WgPanelError):
    status = 404


class PersistenceError(WgPanelError):
    pass


class ExternalToolError(WgPanelError):
    def __init__(self, message, command=None, returncode=None, stderr="", stage=None):
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr
        self.stage = stage
        super().__init__(message)


class RuntimeQueryError(WgPanelError):
    def __init__(self, client, public_key, reason):
        self.client = client
        self.public_key = public_key
        super().__init__(
            f"Invalid public key ('{public_key}') for client '{client}': {reason}"
        )
