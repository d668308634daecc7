import hashlib
import hmac
import secrets

from budgetflow.utils.logger import app_logger


class Ssha2Hash:
    """
    Parses and renders hashes in the {SHA512}digest$salt$iterations format
    """
    DEFAULT_ITERATIONS = 100000

    def __init__(self, arg_digest=None, arg_salt=None, arg_iterations=None):
        """
        Two forms:
        1. Ssha2Hash(hash_string)
        2. Ssha2Hash(digest_bytes, salt_bytes, iterations)
        """
        if isinstance(arg_digest, str):
            self._parse_from_string(arg_digest)
        elif arg_digest is not None and arg_salt is not None and arg_iterations is not None:
            self._digest = bytes(arg_digest)
            self._salt = bytes(arg_salt)
            self._iterations = int(arg_iterations)
        else:
            raise ValueError("Invalid arguments for Ssha2Hash constructor")

    def _parse_from_string(self, arg_digest: str):
        digest = arg_digest
        if digest.startswith(Ssha2Hasher.PREFIX):
            digest = digest[len(Ssha2Hasher.PREFIX):]

        parts = digest.split('$')
        self._digest = bytes.fromhex(parts[0])
        self._salt = bytes.fromhex(parts[1]) if len(parts) > 1 else b''
        self._iterations = int(parts[2]) if len(parts) > 2 else self.DEFAULT_ITERATIONS

    @property
    def digest(self) -> bytes:
        return self._digest

    @property
    def salt(self) -> bytes:
        return self._salt

    @property
    def iterations(self) -> int:
        return self._iterations

    def __str__(self) -> str:
        return f"{Ssha2Hasher.PREFIX}{self._digest.hex()}${self._salt.hex()}${self._iterations}"


class Ssha2Hasher:
    PREFIX = "{SHA512}"
    SALT_LENGTH = 8

    def __init__(self, iterations: int = Ssha2Hash.DEFAULT_ITERATIONS):
        self.iterations = iterations

    def calc_digest(self, plaintext: str, salt: bytes, iterations: int) -> bytes:
        """
        Iterated salted SHA-512 (not PBKDF2)
        """
        digest_bytes = plaintext.encode('utf-8')
        for _ in range(iterations):
            hasher = hashlib.sha512()
            hasher.update(digest_bytes)
            hasher.update(salt)
            digest_bytes = hasher.digest()
        return digest_bytes

    def hash(self, plaintext: str) -> str:
        salt = secrets.token_bytes(self.SALT_LENGTH)
        digest = self.calc_digest(plaintext, salt, self.iterations)
        return str(Ssha2Hash(digest, salt, self.iterations))

    def matches(self, arg_hash: str) -> bool:
        """Whether the stored hash uses this format"""
        return arg_hash.upper().startswith(self.PREFIX.upper())

    def verify(self, arg_hash: str, plaintext: str) -> bool:
        if not arg_hash or not self.matches(arg_hash):
            return False
        try:
            hash_obj = Ssha2Hash(arg_hash)
        except ValueError as e:
            app_logger.error(f"Malformed password hash: {e}")
            return False
        calculated = self.calc_digest(plaintext, hash_obj.salt, hash_obj.iterations)
        return hmac.compare_digest(calculated, hash_obj.digest)
