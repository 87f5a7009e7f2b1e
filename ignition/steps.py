"""Provisioning workflow steps."""
import platform
from dataclasses import dataclass
from typing import Callable, List, Optional

import typer

from ignition import linux
from ignition.prompts import ProvisionConfig
from ignition.utils import log_info, log_success, log_warning


@dataclass(frozen=True)
class Step:
    """One named phase of the run.

    A failing critical step aborts the run, other failures are reported.
    """

    name: str
    action: Callable[[ProvisionConfig, bool], None]
    critical: bool = True


@dataclass(frozen=True)
class StepResult:
    name: str
    ok: bool
    error: Optional[str] = None


def install_dependencies(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Upgrade the system and install Docker and the base utilities."""
    linux.update_packages(dry_run=dry_run)
    log_success("Packages successfully updated")

    linux.install_docker(dry_run=dry_run)
    linux.install_base_packages(dry_run=dry_run)
    log_success("Utilities successfully installed")


def configure_host(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Set the hostname and timezone."""
    linux.set_hostname(config.hostname, dry_run=dry_run)
    log_success("Hostname successfully set")

    linux.set_timezone(config.timezone, dry_run=dry_run)
    log_success("Timezone successfully set")


def provision_user(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Create the admin user when missing and install its SSH keys."""
    if config.user_exists:
        log_warning(f'User "{config.username}" already exists, skip adding user')
    else:
        linux.create_user(config.username, config.password, dry_run=dry_run)

    linux.install_ssh_keys(config.username, config.ssh_keys, dry_run=dry_run)
    log_success("SSH keys successfully added")


def configure_security(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Harden sshd and lock down the firewall."""
    log_info("Configuring ssh...")
    linux.configure_sshd(config.username, dry_run=dry_run)
    linux.restart_sshd(dry_run=dry_run)
    log_success("SSH daemon successfully configured and restarted")

    status = linux.configure_firewall(dry_run=dry_run)
    if status:
        typer.echo(status)
    log_success("Firewall successfully configured")


def configure_shell(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Install the admin user's shell profile."""
    log_info("Configuring shell...")
    linux.configure_shell(config.username, dry_run=dry_run)
    log_success("BASH successfully configured")


def configure_motd(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Replace the stock login banner."""
    log_info("Configuring MOTD...")
    linux.configure_motd(dry_run=dry_run)
    log_success("MOTD successfully configured")


def report_connection(config: ProvisionConfig, dry_run: bool = False) -> None:
    """Tell the operator how to reconnect as the new user."""
    address = linux.get_public_ip() or "<server-ip>"
    typer.echo("")
    typer.echo(f"To connect to this machine again use ssh {config.username}@{address}")
    typer.echo("You should finish current session and reconnect as soon as possible")
    typer.echo("")


def build_steps() -> List[Step]:
    """Provisioning steps in execution order."""
    return [
        Step("install_dependencies", install_dependencies),
        Step("configure_host", configure_host),
        Step("provision_user", provision_user),
        Step("configure_security", configure_security),
        Step("configure_shell", configure_shell),
        Step("configure_motd", configure_motd),
        Step("report_connection", report_connection, critical=False),
    ]


def run_steps(steps: List[Step], config: ProvisionConfig, dry_run: bool = False) -> List[StepResult]:
    """Run steps in order; exceptions from critical steps propagate."""
    results = []
    for step in steps:
        try:
            step.action(config, dry_run)
        except Exception as e:
            if step.critical:
                raise
            log_warning(f"Step {step.name} failed, continuing: {e}")
            results.append(StepResult(step.name, ok=False, error=str(e)))
        else:
            results.append(StepResult(step.name, ok=True))
    return results


def provision_system(config: ProvisionConfig, dry_run: bool = False) -> List[StepResult]:
    """Main provisioning workflow."""
    current_platform = platform.system()

    if current_platform != 'Linux':
        raise NotImplementedError(f"Platform {current_platform} is not supported")

    return run_steps(build_steps(), config, dry_run=dry_run)
