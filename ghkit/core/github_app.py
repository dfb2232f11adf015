"""
github_app.py - GitHub App authentication and git identity

Mints an installation access token for a GitHub App and configures git to
commit as the App's bot user.
"""

import base64
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..utils.console import ConsoleLogger
from .actions import ActionContext, validate_env_name
from .errors import CommandFailedError, InputError
from .runner import CommandRunner

LOG_TAG = "GitHub App"
GITHUB_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = 30

# GitHub rejects App JWTs valid for more than ten minutes; iat is backdated
# to tolerate clock drift between the runner and GitHub.
JWT_CLOCK_SKEW = 60
JWT_LIFETIME = 540


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _load_private_key(private_key_pem: str) -> rsa.RSAPrivateKey:
    # Secrets pasted into the UI sometimes carry literal "\n" sequences.
    pem = private_key_pem.strip().replace("\\n", "\n")
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError) as e:
        raise InputError(f"private-key is not a valid PEM private key: {e}")

    if not isinstance(key, rsa.RSAPrivateKey):
        raise InputError("private-key must be an RSA private key")
    return key


def create_app_jwt(app_id: str, private_key_pem: str, now: Optional[int] = None) -> str:
    """
    Create an RS256-signed JWT that authenticates as the App

    Args:
        app_id: GitHub App ID (or client ID)
        private_key_pem: PEM-encoded RSA private key of the App
        now: Current Unix time override

    Returns:
        Encoded JWT
    """
    if not app_id:
        raise InputError("app-id input is required")

    key = _load_private_key(private_key_pem)
    issued = int(time.time() if now is None else now)

    header = {"alg": "RS256", "typ": "JWT"}
    payload = {"iat": issued - JWT_CLOCK_SKEW, "exp": issued + JWT_LIFETIME, "iss": str(app_id)}

    signing_input = ".".join(
        _b64url(json.dumps(part, separators=(",", ":")).encode("utf-8"))
        for part in (header, payload)
    )
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())

    return f"{signing_input}.{_b64url(signature)}"


@dataclass
class InstallationToken:
    """Installation access token returned by GitHub"""

    token: str
    expires_at: str
    installation_id: int


class GitHubAppClient:
    """Minimal GitHub REST client for App authentication"""

    def __init__(
        self,
        jwt_token: str,
        base_url: str = GITHUB_API_URL,
        session: Optional[requests.Session] = None,
        user_agent: str = "ghkit",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": user_agent,
            }
        )
        self._jwt = jwt_token

    def _request(
        self, method: str, path: str, auth: Optional[str] = None, **kwargs: Any
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {}
        if auth:
            headers["Authorization"] = f"Bearer {auth}"

        try:
            response = self._session.request(
                method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
            )
        except requests.RequestException as e:
            raise CommandFailedError(
                "GitHub API request failed", command=f"{method} {url}", details=str(e)
            )

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            raise CommandFailedError(
                f"GitHub API returned {response.status_code}",
                command=f"{method} {url}",
                details=detail,
            )

        return response.json()

    def get_app(self) -> Dict[str, Any]:
        """Return the authenticated App"""
        return self._request("GET", "app", auth=self._jwt)

    def find_installation(self, owner: str, repo: Optional[str] = None) -> int:
        """
        Find the App installation for a repository or an account

        Args:
            owner: Repository owner (user or organization)
            repo: Repository name; when omitted the owner's installation is used

        Returns:
            Installation ID
        """
        if repo:
            data = self._request("GET", f"repos/{owner}/{repo}/installation", auth=self._jwt)
        else:
            try:
                data = self._request("GET", f"orgs/{owner}/installation", auth=self._jwt)
            except CommandFailedError:
                data = self._request("GET", f"users/{owner}/installation", auth=self._jwt)
        return int(data["id"])

    def create_installation_token(
        self, installation_id: int, repositories: Optional[List[str]] = None
    ) -> InstallationToken:
        """Mint an installation access token, optionally scoped to repositories"""
        body: Dict[str, Any] = {}
        if repositories:
            body["repositories"] = repositories

        data = self._request(
            "POST",
            f"app/installations/{installation_id}/access_tokens",
            auth=self._jwt,
            json=body,
        )
        return InstallationToken(
            token=data["token"],
            expires_at=data.get("expires_at", ""),
            installation_id=installation_id,
        )

    def get_bot_user(self, slug: str) -> Dict[str, Any]:
        """Return the bot user account that acts for the App"""
        return self._request("GET", f"users/{slug}[bot]")


def bot_identity(slug: str, user_id: int) -> Dict[str, str]:
    """Return the git author name and noreply email for an App bot"""
    name = f"{slug}[bot]"
    return {"name": name, "email": f"{user_id}+{name}@users.noreply.github.com"}


def configure_git_identity(
    runner: CommandRunner, name: str, email: str, scope: str = "--global"
) -> None:
    """
    Configure git user.name and user.email

    Raises:
        CommandFailedError: If git config fails
    """
    for key, value in (("user.name", name), ("user.email", email)):
        args = ["git", "config", scope, key, value]
        result = runner.run(args)
        if not result.ok:
            raise CommandFailedError(
                f"Failed to set git {key}",
                command=result.command_line,
                details=result.stderr.strip(),
            )


def split_repository(repository: str) -> List[str]:
    """Split "owner/repo" (or just "owner") into its parts"""
    parts = [part for part in repository.strip().split("/") if part]
    if not parts or len(parts) > 2:
        raise InputError(f"Invalid repository: {repository!r} (expected owner/repo)")
    return parts


def authenticate_app(
    app_id: str,
    private_key: str,
    context: ActionContext,
    runner: CommandRunner,
    logger: Optional[ConsoleLogger] = None,
    installation_id: Optional[int] = None,
    repository: Optional[str] = None,
    repositories: Optional[List[str]] = None,
    configure_git: bool = True,
    export_env_var: Optional[str] = "GH_TOKEN",
    client: Optional[GitHubAppClient] = None,
) -> InstallationToken:
    """
    Mint an installation token, publish it and set up the git identity

    Outputs: ``token``, ``installation-id``, ``app-slug`` and, when git is
    configured, ``git-user-name`` / ``git-user-email``.
    """
    logger = logger or ConsoleLogger(LOG_TAG)

    if not app_id:
        raise InputError("app-id input is required")
    if not private_key:
        raise InputError("private-key input is required")
    if export_env_var:
        validate_env_name(export_env_var)
        context.require_env_file()
    context.require_output_file()

    if client is None:
        client = GitHubAppClient(create_app_jwt(app_id, private_key))

    app = client.get_app()
    slug = app.get("slug", "")
    logger.info(f"Authenticated as GitHub App '{slug}'")

    if installation_id is None:
        if not repository:
            raise InputError("installation-id or repository is required to locate the installation")
        parts = split_repository(repository)
        installation_id = client.find_installation(parts[0], parts[1] if len(parts) > 1 else None)
        logger.info(f"Found installation {installation_id} for {repository}")

    token = client.create_installation_token(installation_id, repositories=repositories)

    context.mask(token.token)
    context.set_outputs(
        {
            "token": token.token,
            "installation-id": str(installation_id),
            "app-slug": slug,
        }
    )
    if export_env_var:
        context.export_env_var(export_env_var, token.token)
        logger.info(f"Exported {export_env_var} to environment")

    if configure_git and slug:
        bot = client.get_bot_user(slug)
        identity = bot_identity(slug, int(bot["id"]))
        configure_git_identity(runner, identity["name"], identity["email"])
        context.set_outputs(
            {"git-user-name": identity["name"], "git-user-email": identity["email"]}
        )
        logger.info(f"Configured git identity {identity['name']} <{identity['email']}>")

    logger.info(f"Installation token expires at {token.expires_at}")
    return token
