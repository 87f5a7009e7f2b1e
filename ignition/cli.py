"""CLI interface for the hardening tool."""
from typing import List, Optional

import sh
import typer

from ignition import prompts, steps, utils


def setup(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview changes without applying them"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    hostname: Optional[str] = typer.Option(None, "--hostname", help="Hostname to set"),
    timezone: Optional[str] = typer.Option(None, "--timezone", help="Timezone to set"),
    user: Optional[str] = typer.Option(None, "--user", help="Name of the admin user"),
    password: Optional[str] = typer.Option(
        None, "--password", envvar="IGNITION_PASSWORD", help="Password for a newly created admin user"
    ),
    ssh_key: Optional[List[str]] = typer.Option(
        None, "--ssh-key", help="Public SSH key for the admin user, may be repeated"
    ),
    non_interactive: bool = typer.Option(
        False, "--non-interactive", help="Never prompt, use defaults for missing values"
    ),
):
    """Harden a fresh Linux server and provision an admin user."""
    utils.setup_logging(verbose)

    if not dry_run and not utils.is_root():
        utils.log_error("Root access required, try rerunning with sudo")
        raise typer.Exit(1)

    prompter = prompts.NonInteractivePrompter() if non_interactive else prompts.InteractivePrompter()

    try:
        config = prompts.collect_config(
            prompter,
            hostname=hostname,
            timezone=timezone,
            username=user,
            password=password,
            ssh_keys=list(ssh_key) if ssh_key else None,
        )

        utils.log_info("🔥 Ignition started!")
        results = steps.provision_system(config, dry_run)
    except utils.ProvisionError as e:
        utils.log_error(str(e))
        raise typer.Exit(1)
    except sh.CommandNotFound as e:
        utils.log_error(f"Command not found: {e}")
        raise typer.Exit(127)
    except sh.ErrorReturnCode as e:
        exit_code = getattr(e, "exit_code", None) or 1
        if exit_code < 0:
            # Killed by a signal
            exit_code = 128 - exit_code
        utils.log_error(f"Command failed with exit code {exit_code}: {e.full_cmd}")
        raise typer.Exit(exit_code)

    failed = [f"{result.name} ({result.error})" for result in results if not result.ok]
    if failed:
        utils.log_warning(f"Finished with non-critical failures: {', '.join(failed)}")
    utils.log_success("🔥 Ignition completed!")


app = typer.Typer(
    name="ignition",
    help="One-shot hardening of a fresh Linux server.",
    add_completion=False,
    invoke_without_command=True,
    callback=setup,
)


if __name__ == "__main__":
    app()
