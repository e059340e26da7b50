import base64
import binascii
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SALT_SIZE = 16  # 128 bit
KEY_SIZE = 32  # 256 bit
PBKDF2_ITERATIONS = 10_000
MAX_ITERATIONS = 2**31 - 1
HASH_NAME = "sha256"
SEPARATOR = "."


class MalformedCredential(ValueError):
    pass


def _valid_iterations(value) -> bool:
    # bool - подкласс int, True не считаем числом итераций
    return (isinstance(value, int) and not isinstance(value, bool)
            and 0 < value <= MAX_ITERATIONS)


@dataclass(frozen=True)
class HashingConfig:
    iterations: int = PBKDF2_ITERATIONS

    def __post_init__(self):
        if not _valid_iterations(self.iterations):
            raise ValueError(
                f"iterations must be an integer in 1..{MAX_ITERATIONS}, got {self.iterations!r}")

    @classmethod
    def from_settings(cls) -> "HashingConfig":
        """
        Берёт PASSWORD_HASH_ITERATIONS из настроек Django, иначе значение по умолчанию.
        """
        from django.conf import settings
        return cls(iterations=getattr(settings, "PASSWORD_HASH_ITERATIONS", PBKDF2_ITERATIONS))


@dataclass(frozen=True)
class StoredCredential:
    """
    Формат хранения: {iterations}.{salt}.{digest}, salt и digest в base64.
    """

    iterations: int
    salt: bytes
    digest: bytes

    def encode(self) -> str:
        return SEPARATOR.join([
            str(self.iterations),
            base64.b64encode(self.salt).decode("ascii"),
            base64.b64encode(self.digest).decode("ascii"),
        ])

    @classmethod
    def decode(cls, text: str) -> "StoredCredential":
        if not isinstance(text, str):
            raise MalformedCredential("not a string")

        parts = text.split(SEPARATOR)
        if len(parts) != 3:
            raise MalformedCredential("wrong field count")
        iters_s, salt_b64, digest_b64 = parts

        # int() принял бы и "+10", " 10", "1_0"
        if not (iters_s.isascii() and iters_s.isdigit()):
            raise MalformedCredential("bad iteration count")
        iterations = int(iters_s)
        if not _valid_iterations(iterations):
            raise MalformedCredential("bad iteration count")

        try:
            salt = base64.b64decode(salt_b64, validate=True)
            digest = base64.b64decode(digest_b64, validate=True)
        except (binascii.Error, ValueError):
            raise MalformedCredential("bad base64") from None

        if len(salt) != SALT_SIZE or len(digest) != KEY_SIZE:
            raise MalformedCredential("wrong field length")

        return cls(iterations=iterations, salt=salt, digest=digest)


def _password_bytes(password: str) -> bytes:
    """
    UTF-8 без исключений: суррогатные пары склеиваются, одиночный суррогат -> U+FFFD.
    """
    return (password.encode("utf-16-le", "surrogatepass")
            .decode("utf-16-le", "replace")
            .encode("utf-8"))


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        HASH_NAME,
        _password_bytes(password),
        salt,
        iterations,
        dklen=KEY_SIZE,
    )


def _fixed_time_equals(a: bytes, b: bytes) -> bool:
    # длина не секрет; содержимое сравнивается без раннего выхода
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


def hash_password(password: str, cfg: HashingConfig | None = None) -> str:
    """
    Возвращает "{iterations}.{salt_b64}.{digest_b64}" со свежей случайной солью.
    """
    if cfg is None:
        cfg = HashingConfig()

    salt = os.urandom(SALT_SIZE)
    dk = _pbkdf2(password, salt, cfg.iterations)
    return StoredCredential(iterations=cfg.iterations, salt=salt, digest=dk).encode()


def verify_password(stored: str, candidate: str) -> bool:
    """
    False и для неверного пароля, и для строки, которая не разбирается.
    """
    try:
        cred = StoredCredential.decode(stored)
    except MalformedCredential as e:
        logger.debug("Rejecting malformed stored credential: %s", e)
        return False

    dk = _pbkdf2(candidate, cred.salt, cred.iterations)
    return _fixed_time_equals(dk, cred.digest)
