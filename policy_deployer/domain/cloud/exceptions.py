class GeneralCSPException(Exception):
    pass


class AuthenticationException(GeneralCSPException):
    """Throw this for instances when there is a problem with the Azure session:
    * No signed-in session while running silently
    * The Azure CLI is missing or sign-in failed
    * An access token could not be acquired
    """

    def __init__(self, auth_error):
        self.auth_error = auth_error

    @property
    def message(self):
        return "An error occurred with authentication: {}".format(self.auth_error)

    def __str__(self):
        return self.message


class ConnectionException(GeneralCSPException):
    """A general problem with the connection, timeouts or unresolved endpoints
    """

    def __init__(self, connection_error):
        self.connection_error = connection_error

    @property
    def message(self):
        return "Could not connect to cloud provider: {}".format(self.connection_error)

    def __str__(self):
        return self.message


class UnknownServerException(GeneralCSPException):
    """The policy API rejected the request and we pass its reason along
    """

    def __init__(self, status_code, server_error):
        self.status_code = status_code
        self.server_error = server_error

    @property
    def message(self):
        return f"A server error with status code [{self.status_code}] occured: {self.server_error}"

    def __str__(self):
        return self.message


class DefinitionParseException(GeneralCSPException):
    """A definition file could not be parsed as JSON"""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason

    @property
    def message(self):
        return "Could not parse definition file {}: {}".format(self.path, self.reason)

    def __str__(self):
        return self.message


class DefinitionClassificationException(GeneralCSPException):
    """A definition file does not have the shape the current tool deploys"""

    def __init__(self, path, expected, found):
        self.path = path
        self.expected = expected
        self.found = found

    @property
    def message(self):
        return "{} is not a {} (found {} content)".format(
            self.path, self.expected, self.found
        )

    def __str__(self):
        return self.message
