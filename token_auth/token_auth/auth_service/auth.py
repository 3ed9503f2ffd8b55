from passlib.context import CryptContext

# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> bool:
    """
    Spend the same hashing work as a real verification.

    Used when no user matched so that "unknown user" and "wrong password"
    take comparable time.
    """
    return pwd_context.dummy_verify()
