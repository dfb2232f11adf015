"""
installers.py - Automatic installation of secret manager CLIs

The Doppler CLI is installed with its official install script, fetched over
HTTPS only with TLS 1.2 or newer and a bounded retry count. The 1Password CLI
is installed through the host's package manager.
"""

import os
import platform
import ssl
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import InstallError, UnsupportedPlatformError
from .runner import CommandRunner

DOPPLER_INSTALL_URL = "https://cli.doppler.com/install.sh"
DOWNLOAD_RETRIES = 3
DOWNLOAD_TIMEOUT = 60

ONEPASSWORD_KEY_URL = "https://downloads.1password.com/linux/keys/1password.asc"
ONEPASSWORD_POLICY_URL = "https://downloads.1password.com/linux/debian/debsig/1password.pol"
ONEPASSWORD_REPO_URL = "https://downloads.1password.com/linux/debian"
ONEPASSWORD_KEY_ID = "AC2D62742012EA22"
ONEPASSWORD_APT_KEYRING = "/usr/share/keyrings/1password-archive-keyring.gpg"
ONEPASSWORD_APT_SOURCE = "/etc/apt/sources.list.d/1password.list"
ONEPASSWORD_POLICY_DIR = f"/etc/debsig/policies/{ONEPASSWORD_KEY_ID}"
ONEPASSWORD_DEBSIG_DIR = f"/usr/share/debsig/keyrings/{ONEPASSWORD_KEY_ID}"


class TLS12HTTPAdapter(HTTPAdapter):
    """HTTPAdapter that refuses TLS versions older than 1.2"""

    def init_poolmanager(self, *args, **kwargs):
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        kwargs["ssl_context"] = context
        return super().init_poolmanager(*args, **kwargs)


def make_download_session(retries: int = DOWNLOAD_RETRIES) -> requests.Session:
    """Create a session that only speaks HTTPS (TLS >= 1.2) and retries a bounded number of times"""
    session = requests.Session()
    retry_strategy = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    session.mount("https://", TLS12HTTPAdapter(max_retries=retry_strategy))
    return session


def download_text(url: str, session: Optional[requests.Session] = None) -> str:
    """
    Download a text resource over the secure channel

    Raises:
        InstallError: If the URL is not HTTPS or the download fails
    """
    if not url.startswith("https://"):
        raise InstallError(f"Refusing to download over a non-HTTPS URL: {url}")

    session = session or make_download_session()
    try:
        response = session.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise InstallError(f"Failed to download {url}: {e}")

    return response.text


def detect_os_family(system: Optional[str] = None) -> str:
    """Return "linux", "darwin" or the lower-cased platform name"""
    return (system or platform.system()).strip().lower()


def privileged_prefix(runner: CommandRunner) -> List[str]:
    """Return ["sudo"] when not running as root and sudo is available"""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() == 0:
        return []
    if runner.which("sudo"):
        return ["sudo"]
    return []


def _run_step(
    runner: CommandRunner, args: List[str], description: str, input: Optional[str] = None
) -> str:
    result = runner.run(args, input=input)
    if not result.ok:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise InstallError(f"Failed to {description}: {detail}")
    return result.stdout


def install_doppler_cli(
    runner: CommandRunner, session: Optional[requests.Session] = None
) -> None:
    """
    Install the Doppler CLI using its official install script

    Raises:
        InstallError: If the script cannot be fetched or fails, or the CLI is
            still missing afterwards
    """
    script = download_text(DOPPLER_INSTALL_URL, session=session)
    _run_step(runner, ["sh"], "run the Doppler CLI installer", input=script)

    if not runner.which("doppler"):
        raise InstallError("Doppler CLI installer finished but 'doppler' is not on PATH")


def _install_onepassword_linux(
    runner: CommandRunner, session: Optional[requests.Session] = None
) -> None:
    sudo = privileged_prefix(runner)
    signing_key = download_text(ONEPASSWORD_KEY_URL, session=session)

    arch = _run_step(
        runner, ["dpkg", "--print-architecture"], "detect the package architecture"
    ).strip()
    if not arch:
        raise InstallError("Failed to detect the package architecture")

    _run_step(
        runner,
        sudo + ["gpg", "--batch", "--yes", "--dearmor", "--output", ONEPASSWORD_APT_KEYRING],
        "import the 1Password signing key",
        input=signing_key,
    )

    source = (
        f"deb [arch={arch} signed-by={ONEPASSWORD_APT_KEYRING}] "
        f"{ONEPASSWORD_REPO_URL}/{arch} stable main\n"
    )
    _run_step(
        runner,
        sudo + ["tee", ONEPASSWORD_APT_SOURCE],
        "register the 1Password apt repository",
        input=source,
    )

    policy = download_text(ONEPASSWORD_POLICY_URL, session=session)
    _run_step(runner, sudo + ["mkdir", "-p", ONEPASSWORD_POLICY_DIR], "create the debsig policy directory")
    _run_step(
        runner,
        sudo + ["tee", f"{ONEPASSWORD_POLICY_DIR}/1password.pol"],
        "install the debsig policy",
        input=policy,
    )
    _run_step(runner, sudo + ["mkdir", "-p", ONEPASSWORD_DEBSIG_DIR], "create the debsig keyring directory")
    _run_step(
        runner,
        sudo
        + ["gpg", "--batch", "--yes", "--dearmor", "--output", f"{ONEPASSWORD_DEBSIG_DIR}/debsig.gpg"],
        "install the debsig keyring",
        input=signing_key,
    )

    _run_step(runner, sudo + ["apt", "update"], "update apt package lists")
    _run_step(runner, sudo + ["apt", "install", "-y", "1password-cli"], "install 1password-cli")


def install_onepassword_cli(
    runner: CommandRunner,
    system: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> None:
    """
    Install the 1Password CLI with the host's package manager

    Args:
        runner: Command runner
        system: Platform name override (defaults to platform.system())
        session: Download session override

    Raises:
        UnsupportedPlatformError: On anything other than Linux or macOS
        InstallError: If any installation step fails
    """
    family = detect_os_family(system)

    if family == "linux":
        _install_onepassword_linux(runner, session=session)
    elif family == "darwin":
        _run_step(runner, ["brew", "install", "1password-cli"], "install 1password-cli with Homebrew")
    else:
        raise UnsupportedPlatformError(
            f"Unsupported OS for automatic 1Password CLI installation: {family or 'unknown'}"
        )

    if not runner.which("op"):
        raise InstallError("1Password CLI installation finished but 'op' is not on PATH")
