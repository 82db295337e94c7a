# security.py
"""
Credential helpers for Miller Mitra profiles.
Handles password/phrase hashing, password and username policy, and
recovery phrase generation.
"""

import hashlib
import re
import secrets

import bcrypt

from logger import log_warning

BCRYPT_MAX_BYTES = 72

# Short, unambiguous words; 12 of them give a phrase users can write down
RECOVERY_WORDS = (
    "apple", "arrow", "autumn", "badge", "basket", "beach", "berry", "blanket",
    "bottle", "branch", "bread", "bridge", "brush", "bucket", "cabin", "camel",
    "candle", "canvas", "carpet", "castle", "cherry", "circle", "cloud", "clover",
    "coconut", "copper", "cotton", "crane", "crystal", "desert", "dolphin", "dragon",
    "eagle", "engine", "falcon", "feather", "field", "forest", "fountain", "garden",
    "ginger", "glacier", "harbor", "harvest", "hazel", "honey", "island", "jacket",
    "jasmine", "jungle", "kettle", "ladder", "lantern", "lemon", "lotus", "magnet",
    "mango", "marble", "meadow", "mirror", "monsoon", "mountain", "needle", "nutmeg",
    "ocean", "orange", "orchid", "paddle", "palace", "panther", "parrot", "pebble",
    "pepper", "pillow", "planet", "pocket", "pollen", "puzzle", "rabbit", "rainbow",
    "ribbon", "river", "rocket", "saddle", "saffron", "sail", "sapphire", "shadow",
    "shell", "silver", "spice", "spring", "stable", "stone", "summer", "sunset",
    "tablet", "temple", "thunder", "tiger", "timber", "tomato", "tulip", "turtle",
    "valley", "velvet", "village", "violet", "walnut", "water", "whistle", "willow",
    "window", "winter", "wizard", "yellow", "zebra", "anchor", "bamboo", "cactus",
    "dune", "ember", "fossil", "granite", "helmet", "iris", "jade", "kite",
)


class SecurityManager:
    """Password policy and hashing"""

    MIN_PASSWORD_LENGTH = 4
    RECOVERY_PHRASE_LENGTH = 12
    USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]+$")

    @staticmethod
    def _digest(secret: str) -> bytes:
        # bcrypt only reads the first 72 bytes; a 12-word phrase is longer
        return hashlib.sha256(secret.encode('utf-8')).hexdigest().encode('ascii')

    @staticmethod
    def hash_secret(secret: str) -> str:
        """Hash a password or recovery phrase using bcrypt over its SHA-256 digest"""
        return bcrypt.hashpw(SecurityManager._digest(secret), bcrypt.gensalt()).decode('utf-8')

    @staticmethod
    def is_hashed(value: str) -> bool:
        return (value or "").startswith(("$2a$", "$2b$", "$2y$"))

    @staticmethod
    def verify_plain(secret: str, stored: str) -> bool:
        """Constant-time comparison for credentials stored before hashing was introduced"""
        return bool(stored) and secrets.compare_digest(secret.encode('utf-8'), stored.encode('utf-8'))

    @staticmethod
    def verify_secret(secret: str, secret_hash: str) -> bool:
        """Verify a password or phrase against its bcrypt hash"""
        if not secret_hash:
            return False
        try:
            if bcrypt.checkpw(SecurityManager._digest(secret), secret_hash.encode('utf-8')):
                return True
            # Hashes written before digesting was introduced
            raw = secret.encode('utf-8')
            return len(raw) <= BCRYPT_MAX_BYTES and bcrypt.checkpw(raw, secret_hash.encode('utf-8'))
        except ValueError as e:
            # Not a bcrypt hash (e.g. a plain-text password from an old backup)
            log_warning(f"Stored credential is not a valid bcrypt hash: {e}")
            return False

    @staticmethod
    def validate_password_strength(password: str) -> tuple[bool, str]:
        """
        Validate password meets requirements.
        Returns (is_valid, error_message)
        """
        if not password or not password.strip():
            return False, "Password cannot be empty"
        if len(password) < SecurityManager.MIN_PASSWORD_LENGTH:
            return False, f"Password must be at least {SecurityManager.MIN_PASSWORD_LENGTH} characters"
        return True, ""

    @staticmethod
    def validate_username(username: str) -> tuple[bool, str]:
        """Usernames become part of storage keys, so only letters and digits are allowed."""
        if not username:
            return False, "Username cannot be empty"
        if not SecurityManager.USERNAME_PATTERN.match(username):
            return False, "Username may contain only letters and numbers"
        return True, ""

    @staticmethod
    def generate_recovery_phrase() -> str:
        words = [secrets.choice(RECOVERY_WORDS) for _ in range(SecurityManager.RECOVERY_PHRASE_LENGTH)]
        return " ".join(words)

    @staticmethod
    def normalize_phrase(phrase: str) -> str:
        return " ".join((phrase or "").lower().split())
