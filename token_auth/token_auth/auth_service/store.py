"""
Credential store: user records and password verification.

The token core only depends on the ``CredentialStore`` protocol;
``SQLAlchemyCredentialStore`` is the database-backed implementation.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Protocol
import logging
import string

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import dummy_verify, hash_password, verify_password as verify_password_hash
from .models import User

logger = logging.getLogger(__name__)

ALLOWED_USERNAME_CHARACTERS = frozenset(string.ascii_letters + string.digits + "-._@+")


@dataclass(frozen=True)
class ValidationErrorItem:
    code: str
    description: str

    def to_dict(self) -> dict:
        return {"code": self.code, "description": self.description}


@dataclass
class CreateUserResult:
    user: Optional[User] = None
    errors: List[ValidationErrorItem] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.user is not None and not self.errors


@dataclass(frozen=True)
class PasswordPolicy:
    required_length: int = 6
    required_unique_chars: int = 1
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True

    @classmethod
    def from_settings(cls, settings) -> "PasswordPolicy":
        return cls(
            required_length=settings.PASSWORD_REQUIRED_LENGTH,
            required_unique_chars=settings.PASSWORD_REQUIRED_UNIQUE_CHARS,
            require_digit=settings.PASSWORD_REQUIRE_DIGIT,
            require_lowercase=settings.PASSWORD_REQUIRE_LOWERCASE,
            require_uppercase=settings.PASSWORD_REQUIRE_UPPERCASE,
            require_non_alphanumeric=settings.PASSWORD_REQUIRE_NON_ALPHANUMERIC,
        )

    def validate(self, password: str) -> List[ValidationErrorItem]:
        """Return one error per rule the password breaks (empty when valid)."""
        errors: List[ValidationErrorItem] = []
        if not password.strip() or len(password) < self.required_length:
            errors.append(ValidationErrorItem(
                "PasswordTooShort",
                f"Passwords must be at least {self.required_length} characters.",
            ))
        if self.require_non_alphanumeric and all(c.isalnum() for c in password):
            errors.append(ValidationErrorItem(
                "PasswordRequiresNonAlphanumeric",
                "Passwords must have at least one non alphanumeric character.",
            ))
        if self.require_digit and not any(c in string.digits for c in password):
            errors.append(ValidationErrorItem(
                "PasswordRequiresDigit",
                "Passwords must have at least one digit ('0'-'9').",
            ))
        if self.require_lowercase and not any(c in string.ascii_lowercase for c in password):
            errors.append(ValidationErrorItem(
                "PasswordRequiresLower",
                "Passwords must have at least one lowercase ('a'-'z').",
            ))
        if self.require_uppercase and not any(c in string.ascii_uppercase for c in password):
            errors.append(ValidationErrorItem(
                "PasswordRequiresUpper",
                "Passwords must have at least one uppercase ('A'-'Z').",
            ))
        if self.required_unique_chars >= 1 and len(set(password)) < self.required_unique_chars:
            errors.append(ValidationErrorItem(
                "PasswordRequiresUniqueChars",
                f"Passwords must use at least {self.required_unique_chars} different characters.",
            ))
        return errors


def normalize(value: str) -> str:
    return value.upper()


def duplicate_username_error(username: str) -> ValidationErrorItem:
    return ValidationErrorItem("DuplicateUserName", f"Username '{username}' is already taken.")


class CredentialStore(Protocol):
    def create_user(self, username: str, email: Optional[str], password: str) -> CreateUserResult:
        ...

    def find_by_username(self, username: str) -> Optional[User]:
        ...

    def verify_password(self, user: Optional[User], password: str) -> bool:
        ...


class SQLAlchemyCredentialStore:
    """
    CredentialStore backed by a SQLAlchemy session.

    Storage errors other than the username uniqueness race are not caught
    here; they propagate to the caller unchanged.
    """

    def __init__(self, db: Session, policy: Optional[PasswordPolicy] = None):
        self.db = db
        self.policy = policy or PasswordPolicy()

    def _validate_username(self, username: str) -> List[ValidationErrorItem]:
        if not username or any(c not in ALLOWED_USERNAME_CHARACTERS for c in username):
            return [ValidationErrorItem(
                "InvalidUserName",
                f"Username '{username}' is invalid, can only contain letters or digits.",
            )]
        if self.find_by_username(username) is not None:
            return [duplicate_username_error(username)]
        return []

    def create_user(self, username: str, email: Optional[str], password: str) -> CreateUserResult:
        # Password rules are checked first; username errors only surface
        # once the password is acceptable
        errors = self.policy.validate(password or "")
        if not errors:
            errors = self._validate_username(username)
        if errors:
            return CreateUserResult(errors=errors)

        user = User(
            username=username,
            normalized_username=normalize(username),
            email=email,
            normalized_email=normalize(email) if email else None,
            password_hash=hash_password(password),
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            # Concurrent registration won the unique index
            self.db.rollback()
            logger.info("Username race lost during registration: username=%s", username)
            return CreateUserResult(errors=[duplicate_username_error(username)])
        except BaseException:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return CreateUserResult(user=user)

    def find_by_username(self, username: str) -> Optional[User]:
        if not username:
            return None
        return (
            self.db.query(User)
            .filter(User.normalized_username == normalize(username))
            .first()
        )

    def verify_password(self, user: Optional[User], password: str) -> bool:
        if user is None:
            dummy_verify()
            return False
        if not password:
            return False
        return verify_password_hash(password, user.password_hash)
