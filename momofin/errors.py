"""
Error taxonomy for Momofin Core.

Callers branch on the exception class. The message is meant for logs and
response bodies only.
"""


class MomofinError(Exception):
    """Base error for the service."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrganizationNotFoundError(MomofinError):
    """No organization is registered under the given name."""

    def __init__(self, organization_name: str):
        super().__init__(
            f"The organization {organization_name} is not registered to our database"
        )
        self.organization_name = organization_name


class InvalidCredentialsError(MomofinError):
    """Unknown user or wrong password. The two cases are never told apart."""

    def __init__(self):
        super().__init__("Your email or password is incorrect")


class UserAlreadyExistsError(MomofinError):
    """Email or username collides with an existing user."""
    pass


class InvalidPasswordError(MomofinError):
    """The password cannot be hashed, e.g. it exceeds bcrypt's 72-byte input."""
    pass


class TokenInvalidError(MomofinError):
    """Token is malformed, has a bad signature, or has expired."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class DigestError(MomofinError):
    """Base error for keyed digest computation."""
    pass


class UnsupportedAlgorithmError(DigestError):
    """The HMAC algorithm is unknown to this runtime."""

    def __init__(self, algorithm: str):
        super().__init__(f"Unsupported HMAC algorithm: {algorithm}")
        self.algorithm = algorithm


class InvalidKeyError(DigestError):
    """The HMAC secret is missing, empty or of the wrong type."""
    pass


class DigestIOError(DigestError):
    """The input could not be read to the end."""
    pass
