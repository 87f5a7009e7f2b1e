"""Linux (Debian/Ubuntu) provisioning functions."""
import os
import pwd
import shutil
from pathlib import Path
from typing import List, Optional

import sh

from ignition.files import ManagedFile, apply_file, chown, render_template
from ignition.utils import command_exists, log_action, log_info, log_warning, run

BASE_PACKAGES = [
    "curl", "tree", "wget", "git", "tmux", "unzip", "gnupg",
    "software-properties-common", "apt-transport-https", "ca-certificates",
    "ufw", "fail2ban",
    "docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin",
]
DOCKER_INSTALL_URL = "https://get.docker.com"
PUBLIC_IP_URL = "ifconfig.me"

FIREWALL_RULES = [
    ("22/tcp", "SSH"),
    ("80/tcp", "HTTP"),
    ("443/tcp", "HTTPS"),
]
ADMIN_GROUPS = "sudo,docker"

HOSTS_PATH = Path("/etc/hosts")
HOME_ROOT = Path("/home")
SUDOERS_DIR = Path("/etc/sudoers.d")
SSHD_CONFIG_PATH = Path("/etc/ssh/sshd_config")
MOTD_DIR = Path("/etc/update-motd.d")
MOTD_FILES = [
    Path("/etc/motd"),
    Path("/etc/motd.tail"),
    Path("/etc/motd.head"),
    Path("/var/run/motd.dynamic"),
]


def update_packages(dry_run: bool = False) -> None:
    """Refresh the package index and upgrade everything, keeping old configs."""
    if dry_run:
        log_action("[DRY RUN] Would run apt update and apt upgrade")
        return

    log_action("Updating packages (this may take a while)...")
    run("apt", "update")
    run(
        "apt", "upgrade", "-y",
        "-o", "Dpkg::Options::=--force-confdef",
        "-o", "Dpkg::Options::=--force-confold",
        _env={**os.environ, "DEBIAN_FRONTEND": "noninteractive"},
    )


def check_docker() -> bool:
    """Check if Docker is installed."""
    return command_exists('docker')


def install_docker(dry_run: bool = False) -> None:
    """Install Docker with the upstream convenience script if it is missing."""
    if check_docker():
        log_warning("Docker seems to be already installed, skip installation")
        return

    if dry_run:
        log_action(f"[DRY RUN] Would install Docker from {DOCKER_INSTALL_URL}")
        return

    log_action("Fetching docker installation script...")
    install_script = run("curl", "-fsSL", DOCKER_INSTALL_URL)
    log_action("Installing docker...")
    run("bash", "-c", install_script)


def install_base_packages(packages: Optional[List[str]] = None, dry_run: bool = False) -> None:
    """Install the base utilities in one apt transaction."""
    packages = packages or BASE_PACKAGES
    if dry_run:
        log_action(f"[DRY RUN] Would install {' '.join(packages)}")
        return

    log_action("Installing base utilities...")
    run("apt", "install", "-y", *packages)


def set_hostname(hostname: str, dry_run: bool = False) -> None:
    """Set the hostname and map it to 127.0.1.1.

    The hosts entry is appended on every call, reruns leave duplicates.
    """
    entry = f"127.0.1.1 {hostname}\n"
    if dry_run:
        log_action(f"[DRY RUN] Would set hostname to {hostname} and append '{entry.strip()}' to {HOSTS_PATH}")
        return

    run("hostnamectl", "set-hostname", hostname)
    with open(HOSTS_PATH, 'a') as f:
        f.write(entry)


def set_timezone(timezone: str, dry_run: bool = False) -> None:
    """Set the system timezone."""
    if dry_run:
        log_action(f"[DRY RUN] Would set timezone to {timezone}")
        return

    run("timedatectl", "set-timezone", timezone)


def get_user_home(username: str) -> Path:
    """Get the home directory of a user, or where useradd -m puts it."""
    try:
        return Path(pwd.getpwnam(username).pw_dir)
    except KeyError:
        return HOME_ROOT / username


def create_user(username: str, password: str, dry_run: bool = False) -> None:
    """Create an admin user with a home, a password and sudo rights."""
    if dry_run:
        log_action(f"[DRY RUN] Would create user {username} in groups {ADMIN_GROUPS}")
        return

    log_action("Creating default user...")
    run("useradd", "-m", "-s", "/bin/bash", username)
    run("chpasswd", _in=f"{username}:{password}\n")
    run("usermod", "-aG", ADMIN_GROUPS, username)

    apply_file(ManagedFile(
        path=SUDOERS_DIR / username,
        content=f"{username} ALL=(ALL:ALL) ALL\n",
        mode=0o440,
    ))


def install_ssh_keys(username: str, keys: List[str], dry_run: bool = False) -> None:
    """Replace the user's authorized_keys with the given keys."""
    ssh_dir = get_user_home(username) / ".ssh"
    authorized_keys = ManagedFile(
        path=ssh_dir / "authorized_keys",
        content="\n".join(keys) + "\n",
        mode=0o600,
        owner=username,
    )

    if dry_run:
        log_action(f"[DRY RUN] Would add {len(keys)} ssh key(s) to {authorized_keys.path}")
        return

    log_action("Adding ssh keys...")
    ssh_dir.mkdir(parents=True, exist_ok=True)
    os.chmod(ssh_dir, 0o700)
    chown(ssh_dir, username)
    apply_file(authorized_keys)


def configure_sshd(username: str, dry_run: bool = False) -> bool:
    """Write the hardened sshd configuration allowing only ``username``."""
    return apply_file(
        ManagedFile(
            path=SSHD_CONFIG_PATH,
            content=render_template("sshd_config", user_name=username),
        ),
        dry_run=dry_run,
    )


def restart_sshd(dry_run: bool = False) -> None:
    """Validate the sshd configuration and restart the daemon."""
    if dry_run:
        log_action("[DRY RUN] Would restart ssh")
        return

    log_action("Restarting ssh...")
    run("sshd", "-t")
    run("systemctl", "restart", "ssh")


def configure_firewall(dry_run: bool = False) -> Optional[str]:
    """Reset ufw to deny incoming traffic except SSH, HTTP and HTTPS.

    Returns the verbose status after enabling.
    """
    if dry_run:
        ports = ", ".join(port for port, _ in FIREWALL_RULES)
        log_action(f"[DRY RUN] Would reset ufw and allow only {ports}")
        return None

    log_action("Configuring firewall...")
    run("ufw", "--force", "reset")
    run("ufw", "default", "deny", "incoming")
    run("ufw", "default", "allow", "outgoing")
    for port, comment in FIREWALL_RULES:
        run("ufw", "allow", port, "comment", comment)
    run("ufw", "--force", "enable")
    return run("ufw", "status", "verbose")


def configure_shell(username: str, dry_run: bool = False) -> bool:
    """Replace the user's .bashrc with the standard profile."""
    return apply_file(
        ManagedFile(
            path=get_user_home(username) / ".bashrc",
            content=render_template("bashrc"),
            owner=username,
        ),
        dry_run=dry_run,
    )


def _systemctl_quietly(*args: str) -> None:
    # Timers are missing on minimal images
    try:
        run("systemctl", *args)
    except sh.ErrorReturnCode as e:
        log_info(f"systemctl {' '.join(args)} exited with {e.exit_code}, ignoring.")
    except sh.CommandNotFound:
        log_info(f"systemctl not available, skipping {' '.join(args)}.")


def remove_stock_motd(dry_run: bool = False) -> None:
    """Remove distribution MOTD scripts, static banners and news timers."""
    if dry_run:
        log_action(f"[DRY RUN] Would remove stock MOTD from {MOTD_DIR} and disable motd-news.timer")
        return

    if MOTD_DIR.is_dir():
        for entry in list(MOTD_DIR.iterdir()):
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
    for path in MOTD_FILES:
        if path.exists() or path.is_symlink():
            path.unlink()

    for action in ("disable", "stop", "mask"):
        _systemctl_quietly(action, "motd-news.timer")
    for action in ("disable", "stop"):
        _systemctl_quietly(action, "apt-daily.timer")


def configure_motd(dry_run: bool = False) -> None:
    """Install the dynamic login banner as the only MOTD source."""
    remove_stock_motd(dry_run=dry_run)
    apply_file(
        ManagedFile(
            path=MOTD_DIR / "00-header",
            content=render_template("00-header"),
            mode=0o755,
        ),
        dry_run=dry_run,
    )


def get_public_ip() -> Optional[str]:
    """Get the external address of this machine."""
    try:
        address = run("curl", "-s", "--max-time", "10", PUBLIC_IP_URL).strip()
    except (sh.ErrorReturnCode, sh.CommandNotFound):
        return None
    return address or None
