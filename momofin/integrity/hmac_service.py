"""
Keyed content hashing for document integrity.

Documents are fingerprinted with an HMAC over their bytes. Input is read in
fixed-size chunks, so memory use does not grow with the file size.
"""
import hashlib
import hmac
import os
from typing import BinaryIO, Union

from momofin.errors import DigestIOError, InvalidKeyError, UnsupportedAlgorithmError

CHUNK_SIZE = 1024

Secret = Union[str, bytes]
Source = Union[str, "os.PathLike[str]", BinaryIO]


def resolve_digestmod(algorithm: str) -> str:
    """
    Map an HMAC algorithm name to a hashlib digest name.

    Accepts ``HmacSHA256`` style names as well as plain hashlib names
    (``sha256``, ``sha3_256``), case-insensitively.

    Raises:
        UnsupportedAlgorithmError: If the runtime has no such fixed-length digest
    """
    if not isinstance(algorithm, str) or not algorithm.strip():
        raise UnsupportedAlgorithmError(str(algorithm))

    name = algorithm.strip().lower()
    if name.startswith("hmac"):
        name = name[len("hmac"):].lstrip("-_")
    name = name.replace("/", "_").replace("-", "_")

    # SHAKE digests have no fixed length and cannot back an HMAC
    if name.startswith("shake") or name not in hashlib.algorithms_available:
        raise UnsupportedAlgorithmError(algorithm)
    return name


def _encode_secret(secret: Secret) -> bytes:
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if not isinstance(secret, (bytes, bytearray)):
        raise InvalidKeyError("HMAC secret must be str or bytes")
    if not secret:
        raise InvalidKeyError("HMAC secret must not be empty")
    return bytes(secret)


def new_hmac(secret: Secret, algorithm: str) -> "hmac.HMAC":
    """Return a fresh keyed-hash context for the given secret and algorithm."""
    key = _encode_secret(secret)
    digestmod = resolve_digestmod(algorithm)
    try:
        return hmac.new(key, digestmod=digestmod)
    except ValueError as e:
        # Listed by hashlib but not usable, e.g. blocked by a FIPS provider
        raise UnsupportedAlgorithmError(algorithm) from e


def calculate_stream_hmac(stream: BinaryIO, secret: Secret, algorithm: str) -> str:
    """
    Compute the HMAC of an open binary stream, reading it to the end.

    Returns:
        Lowercase hex digest

    Raises:
        UnsupportedAlgorithmError, InvalidKeyError, DigestIOError
    """
    mac = new_hmac(secret, algorithm)
    try:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            # A non-blocking stream with no data ready returns None, not EOF
            if chunk is None:
                raise DigestIOError("Stream returned no data before end of input")
            if not chunk:
                break
            if not isinstance(chunk, (bytes, bytearray, memoryview)):
                raise DigestIOError("Stream must be opened in binary mode")
            mac.update(chunk)
    except (OSError, ValueError) as e:
        # ValueError covers reads from a closed stream
        raise DigestIOError(f"Failed to read input: {e}") from e
    return mac.hexdigest()


def calculate_file_hmac(path: Union[str, "os.PathLike[str]"], secret: Secret, algorithm: str) -> str:
    """Compute the HMAC of a file on disk."""
    # Validate before touching the filesystem
    new_hmac(secret, algorithm)
    try:
        stream = open(path, "rb")
    except OSError as e:
        raise DigestIOError(f"Failed to open {os.fspath(path)}: {e}") from e
    with stream:
        return calculate_stream_hmac(stream, secret, algorithm)


def calculate_hmac(source: Source, secret: Secret, algorithm: str) -> str:
    """Compute the HMAC of a file path or an open binary stream."""
    if isinstance(source, (str, os.PathLike)):
        return calculate_file_hmac(source, secret, algorithm)
    return calculate_stream_hmac(source, secret, algorithm)


def verify_hmac(source: Source, secret: Secret, expected: str, algorithm: str) -> bool:
    """Check ``source`` against an expected hex digest in constant time."""
    return digests_match(calculate_hmac(source, secret, algorithm), expected)


def digests_match(actual: str, expected: str) -> bool:
    """Compare two hex digests in constant time, ignoring case and surrounding space."""
    actual = (actual or "").strip().lower()
    expected = (expected or "").strip().lower()
    return hmac.compare_digest(actual.encode("utf-8"), expected.encode("utf-8"))
