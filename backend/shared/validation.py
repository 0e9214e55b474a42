"""Input validation for account, profile and listing fields.

Every validator is pure and never raises. Shape checks return a bool;
rule checks return a ValidationResult listing every violated rule so a
form can show them all at once.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from collections.abc import Mapping

EMAIL_MAX_LENGTH = 254
_EMAIL_PATTERN = re.compile(r"^[^\s@<>\"'()\[\];:,\\]+@[^\s@<>\"'()\[\];:,\\]+\.[^\s@<>\"'()\[\];:,\\]+$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

MAX_ETH_PRICE = Decimal(1_000_000)
MAX_PRICE_DECIMALS = 8

NFT_NAME_MAX_LENGTH = 100
NFT_DESCRIPTION_MAX_LENGTH = 1000
BIO_MAX_LENGTH = 500

MAX_NFT_FILE_SIZE = 100 * 1024 * 1024  # 100MB
ALLOWED_NFT_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "video/mp4",
        "video/webm",
    },
)

_UNSAFE_CONTENT = re.compile(r"<script|javascript:|data:", re.IGNORECASE)
_ETH_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=errors)


def is_valid_email(email: str) -> bool:
    """Check ``local@domain.tld`` shape; rejects markup and script URLs."""
    if not isinstance(email, str) or len(email) > EMAIL_MAX_LENGTH:
        return False
    if _UNSAFE_CONTENT.search(email):
        return False
    return _EMAIL_PATTERN.match(email) is not None


def is_valid_password(password: str) -> ValidationResult:
    errors: list[str] = []
    if not isinstance(password, str):
        return ValidationResult.from_errors(["Password is required"])

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    return ValidationResult.from_errors(errors)


def is_valid_username(username: str) -> ValidationResult:
    errors: list[str] = []
    if not isinstance(username, str):
        return ValidationResult.from_errors(["Username is required"])

    if len(username) < USERNAME_MIN_LENGTH:
        errors.append(f"Username must be at least {USERNAME_MIN_LENGTH} characters long")
    if len(username) > USERNAME_MAX_LENGTH:
        errors.append(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
    if not _USERNAME_PATTERN.match(username):
        errors.append("Username can only contain letters, numbers, underscores, and hyphens")
    if username[:1] in {"_", "-"} or username[-1:] in {"_", "-"}:
        errors.append("Username cannot start or end with underscore or hyphen")
    return ValidationResult.from_errors(errors)


def sanitize_string(value: str) -> str:
    """Escape markup characters and trim. Non-string input becomes an empty string."""
    if not isinstance(value, str):
        return ""
    return html.escape(value, quote=True).replace("/", "&#x2F;").strip()


def is_valid_eth_price(price: str) -> ValidationResult:
    if not isinstance(price, str) or not price.strip():
        return ValidationResult.from_errors(["Price is required"])

    text = price.strip()
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return ValidationResult.from_errors(["Price must be a valid number"])
    if not amount.is_finite():
        return ValidationResult.from_errors(["Price must be a valid number"])

    errors: list[str] = []
    if amount <= 0:
        errors.append("Price must be greater than 0")
    if amount > MAX_ETH_PRICE:
        errors.append("Price cannot exceed 1,000,000 ETH")
    decimals = len(text.partition(".")[2])
    if decimals > MAX_PRICE_DECIMALS:
        errors.append(f"Price cannot have more than {MAX_PRICE_DECIMALS} decimal places")
    return ValidationResult.from_errors(errors)


def is_valid_nft_name(name: str) -> ValidationResult:
    if not isinstance(name, str) or not name.strip():
        return ValidationResult.from_errors(["NFT name is required"])

    errors: list[str] = []
    trimmed = name.strip()
    if len(trimmed) > NFT_NAME_MAX_LENGTH:
        errors.append(f"NFT name cannot exceed {NFT_NAME_MAX_LENGTH} characters")
    if _UNSAFE_CONTENT.search(trimmed):
        errors.append("NFT name contains invalid content")
    return ValidationResult.from_errors(errors)


def is_valid_nft_description(description: str | None) -> ValidationResult:
    if not description:
        return ValidationResult()

    errors: list[str] = []
    if len(description) > NFT_DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description cannot exceed {NFT_DESCRIPTION_MAX_LENGTH} characters")
    if _UNSAFE_CONTENT.search(description):
        errors.append("Description contains invalid content")
    return ValidationResult.from_errors(errors)


def is_valid_nft_file(size: int, content_type: str) -> ValidationResult:
    """Bound upload size and restrict to image/video types the gallery renders."""
    errors: list[str] = []
    if size > MAX_NFT_FILE_SIZE:
        errors.append("File size cannot exceed 100MB")
    if size <= 0:
        errors.append("File is empty")
    if content_type not in ALLOWED_NFT_CONTENT_TYPES:
        errors.append("File type not supported. Please use JPG, PNG, GIF, WebP, MP4, or WebM")
    return ValidationResult.from_errors(errors)


def is_valid_ethereum_address(address: str) -> bool:
    return isinstance(address, str) and _ETH_ADDRESS_PATTERN.match(address) is not None


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        # Malformed bracketed hosts such as "http://[oops".
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def validate_profile_update(changes: Mapping[str, object]) -> ValidationResult:
    """Validate the self-editable profile fields present in ``changes``."""
    errors: list[str] = []

    username = changes.get("username")
    if username is not None:
        errors.extend(is_valid_username(str(username)).errors)

    bio = changes.get("bio")
    if isinstance(bio, str):
        if len(bio) > BIO_MAX_LENGTH:
            errors.append(f"Bio must be less than {BIO_MAX_LENGTH} characters long")
        if _UNSAFE_CONTENT.search(bio):
            errors.append("Bio contains invalid content")

    website = changes.get("website")
    if isinstance(website, str) and website and not is_valid_url(website):
        errors.append("Website must be a valid URL")

    avatar_url = changes.get("avatar_url")
    if isinstance(avatar_url, str) and avatar_url and not is_valid_url(avatar_url):
        errors.append("Avatar URL must be a valid URL")

    wallet = changes.get("wallet_address")
    if isinstance(wallet, str) and wallet and not is_valid_ethereum_address(wallet):
        errors.append("Wallet address must be a valid Ethereum address")

    return ValidationResult.from_errors(errors)
