import keyring
from keyring.errors import PasswordDeleteError

ONBOARDING_FLAG = "hasCompletedOnboarding"
SEEDED_FLAG = "hasSeededDefaultExercises"


class KeyringFlagStore:
    """Persist one-time flags in the OS keychain.

    Keychain items survive a reinstall of the app database, so a flag set here
    keeps seeding from running a second time against a synced store.
    """

    def __init__(self, service: str = "repscale.storage") -> None:
        self.service = service

    def set_flag(self, key: str) -> None:
        keyring.set_password(self.service, key, "true")

    def has_flag(self, key: str) -> bool:
        return keyring.get_password(self.service, key) == "true"

    def clear_flag(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
        except PasswordDeleteError:
            pass
