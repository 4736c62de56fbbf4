import os
import yaml
import keyring
from keyring.errors import PasswordDeleteError

APP_VERSION = "1.0.0"

# written in place of a secret once it lives in the keychain
_KEYCHAIN_MARKER = "<keychain>"


class YamlConfig:
    """Settings file backed by YAML.

    With ``ENCRYPT_SETTINGS=1`` sensitive values such as the cloud sync token
    are moved into the OS keychain and the file only keeps a marker. Files
    written that way still load after the variable is unset.
    """

    SENSITIVE_KEYS = {
        "cloud_sync_token",
    }

    def __init__(self, path: str = "settings.yaml", service: str = "repscale") -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = service

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        for key in self.SENSITIVE_KEYS & set(data):
            if not self.encrypt and data[key] != _KEYCHAIN_MARKER:
                continue
            secret = keyring.get_password(self.service, key)
            if secret is not None:
                data[key] = secret
            else:
                data.pop(key, None)
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.encrypt:
            for key in self.SENSITIVE_KEYS & set(out):
                if out[key] == _KEYCHAIN_MARKER:
                    continue
                keyring.set_password(self.service, key, str(out[key]))
                out[key] = _KEYCHAIN_MARKER
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f)

    def forget_secrets(self) -> None:
        """Remove every sensitive value from the keychain."""
        for key in self.SENSITIVE_KEYS:
            try:
                keyring.delete_password(self.service, key)
            except PasswordDeleteError:
                continue
