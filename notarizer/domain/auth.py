from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from notarizer.domain.errors import CredentialsError

API_KEY_SEARCH_DIRS = (
    "./private_keys",
    "~/private_keys",
    "~/.private_keys",
    "~/.appstoreconnect/private_keys",
)


@dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""
    provider: str = ""
    api_key: str = ""
    api_key_path: str = ""
    api_issuer: str = ""


@dataclass(frozen=True)
class PasswordAuth:
    username: str
    password: str
    provider: str = ""

    def command_args(self) -> list[str]:
        args = ["--apple-id", self.username, "--password", self.password]
        if self.provider:
            args.extend(["--team-id", self.provider])
        return args


@dataclass(frozen=True)
class ApiKeyAuth:
    api_key: str
    api_issuer: str
    api_key_path: str = ""

    def resolve_key_path(self) -> str:
        if self.api_key_path:
            return self.api_key_path
        found = find_api_key_file(self.api_key)
        if found is None:
            raise CredentialsError(
                f"no AuthKey_{self.api_key}.p8 found in the default key directories. "
                "Please specify api_key_path or put a key into a default location"
            )
        return str(found)

    def command_args(self) -> list[str]:
        return [
            "--key-id",
            self.api_key,
            "--issuer",
            self.api_issuer,
            "--key",
            self.resolve_key_path(),
        ]


AuthMethod = PasswordAuth | ApiKeyAuth


def select_auth(credentials: Credentials) -> AuthMethod:
    """Pick exactly one authentication method.

    API key auth takes precedence when both pairs are complete. A half-filled
    pair is rejected outright instead of silently falling back to the other
    method.
    """
    if bool(credentials.api_key) != bool(credentials.api_issuer):
        missing = "api_issuer" if credentials.api_key else "api_key"
        raise CredentialsError(f"incomplete API key credentials: `{missing}` is not set")
    if bool(credentials.username) != bool(credentials.password):
        missing = "password" if credentials.username else "username"
        raise CredentialsError(f"incomplete Apple ID credentials: `{missing}` is not set")

    if credentials.api_key and credentials.api_issuer:
        return ApiKeyAuth(
            api_key=credentials.api_key,
            api_issuer=credentials.api_issuer,
            api_key_path=credentials.api_key_path,
        )
    if credentials.username and credentials.password:
        return PasswordAuth(
            username=credentials.username,
            password=credentials.password,
            provider=credentials.provider,
        )
    raise CredentialsError(
        "no authorization info given. Please specify Apple username + password or api_key + api_issuer"
    )


def find_api_key_file(api_key: str) -> Path | None:
    search_dirs: tuple[str, ...] = API_KEY_SEARCH_DIRS
    env_dir = os.getenv("API_PRIVATE_KEYS_DIR")
    if env_dir:
        search_dirs = (env_dir,)

    key_name = f"AuthKey_{api_key}.p8"
    for directory in search_dirs:
        candidate = Path(directory).expanduser() / key_name
        if candidate.is_file():
            return candidate
    return None
