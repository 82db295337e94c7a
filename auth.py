# auth.py
"""
Profile management for Miller Mitra.
Each mill operator has a local profile (username, password, recovery
phrase); all ledger data is scoped by the profile's username.
"""

from typing import Dict, List, Optional

from errors import ProfileError
from logger import log_info, log_warning
from records import UserProfile
from security import SecurityManager
from storage import KeyValueStore, load_profiles, save_profiles


class AuthManager:
    """Handles profile creation, sign-in and password recovery"""

    @staticmethod
    def _find(profiles: List[UserProfile], username: str) -> Optional[UserProfile]:
        wanted = (username or "").strip().lower()
        return next((p for p in profiles if p.username.lower() == wanted), None)

    @staticmethod
    def list_usernames(store: KeyValueStore) -> List[str]:
        return sorted(p.username for p in load_profiles(store))

    @staticmethod
    def create_profile(store: KeyValueStore, username: str, password: str) -> str:
        """
        Create a new profile.
        Returns the 12-word recovery phrase; it is shown once and only its hash is kept.
        """
        username = (username or "").strip()
        ok, msg = SecurityManager.validate_username(username)
        if not ok:
            raise ProfileError(msg)
        ok, msg = SecurityManager.validate_password_strength(password)
        if not ok:
            raise ProfileError(msg)

        profiles = load_profiles(store)
        if AuthManager._find(profiles, username):
            raise ProfileError(f"Username '{username}' already exists")

        phrase = SecurityManager.generate_recovery_phrase()
        profiles.append(UserProfile(
            username=username,
            password=SecurityManager.hash_secret(password),
            recovery_phrase_hash=SecurityManager.hash_secret(phrase),
        ))
        save_profiles(store, profiles)
        log_info(f"Profile created: {username}")
        return phrase

    @staticmethod
    def authenticate(store: KeyValueStore, username: str, password: str) -> Optional[Dict]:
        """
        Check credentials.
        Returns a user dict if successful, None otherwise.
        """
        profiles = load_profiles(store)
        profile = AuthManager._find(profiles, username)
        if not profile:
            log_warning(f"Failed sign-in for '{username}'")
            return None

        password = password or ""
        if SecurityManager.is_hashed(profile.password):
            ok = SecurityManager.verify_secret(password, profile.password)
        else:
            # Profiles restored from old backups hold the password as plain text
            ok = SecurityManager.verify_plain(password, profile.password)
            if ok:
                profile.password = SecurityManager.hash_secret(password)
                save_profiles(store, profiles)
                log_info(f"Stored password of '{profile.username}' upgraded to a bcrypt hash")
        if not ok:
            log_warning(f"Failed sign-in for '{username}'")
            return None
        log_info(f"Signed in: {profile.username}")
        return {"username": profile.username}

    @staticmethod
    def reset_password_with_phrase(
        store: KeyValueStore, username: str, phrase: str, new_password: str
    ) -> None:
        profiles = load_profiles(store)
        profile = AuthManager._find(profiles, username)
        if not profile:
            raise ProfileError("User not found")
        if not SecurityManager.verify_secret(SecurityManager.normalize_phrase(phrase), profile.recovery_phrase_hash):
            log_warning(f"Wrong recovery phrase for '{username}'")
            raise ProfileError("Recovery phrase does not match")
        ok, msg = SecurityManager.validate_password_strength(new_password)
        if not ok:
            raise ProfileError(msg)

        profile.password = SecurityManager.hash_secret(new_password)
        save_profiles(store, profiles)
        log_info(f"Password reset with recovery phrase: {profile.username}")

    @staticmethod
    def change_password(
        store: KeyValueStore, username: str, old_password: str, new_password: str
    ) -> None:
        profiles = load_profiles(store)
        profile = AuthManager._find(profiles, username)
        if not profile:
            raise ProfileError("User not found")
        if not SecurityManager.verify_secret(old_password or "", profile.password):
            raise ProfileError("Current password is incorrect")
        ok, msg = SecurityManager.validate_password_strength(new_password)
        if not ok:
            raise ProfileError(msg)
        if SecurityManager.verify_secret(new_password, profile.password):
            raise ProfileError("New password cannot be the same as current password")

        profile.password = SecurityManager.hash_secret(new_password)
        save_profiles(store, profiles)
        log_info(f"Password changed: {profile.username}")

    @staticmethod
    def delete_profile(store: KeyValueStore, username: str) -> int:
        """
        PERMANENTLY delete a profile and every ledger it owns.
        Returns the number of ledger slots removed.
        """
        profiles = load_profiles(store)
        profile = AuthManager._find(profiles, username)
        if not profile:
            raise ProfileError("User not found")

        prefix = f"{profile.username}_"
        removed = store.delete_many(k for k in store.keys() if k.startswith(prefix))
        save_profiles(store, [p for p in profiles if p is not profile])
        log_info(f"Profile deleted: {profile.username} ({removed} ledger slot(s) removed)")
        return removed
