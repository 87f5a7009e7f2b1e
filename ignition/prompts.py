"""Collection of the run's parameters from options or interactive prompts."""
import pwd
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import typer

from ignition.utils import ProvisionError

DEFAULT_HOSTNAME = "vm"
DEFAULT_TIMEZONE = "Europe/Moscow"
DEFAULT_USER_NAME = "admin"


@dataclass
class ProvisionConfig:
    """Parameters of a single provisioning run."""

    hostname: str = DEFAULT_HOSTNAME
    timezone: str = DEFAULT_TIMEZONE
    username: str = DEFAULT_USER_NAME
    password: Optional[str] = None
    ssh_keys: List[str] = field(default_factory=list)
    user_exists: bool = False


class Prompter(Protocol):
    """Source of answers for values not given on the command line."""

    def ask(self, text: str, default: str) -> str:
        ...

    def ask_secret(self, text: str) -> str:
        ...

    def ask_lines(self, text: str) -> List[str]:
        ...


class InteractivePrompter:
    """Ask the operator on the terminal."""

    def ask(self, text: str, default: str) -> str:
        answer = typer.prompt(f'{text} (default "{default}")', default="", show_default=False)
        return answer.strip() or default

    def ask_secret(self, text: str) -> str:
        return typer.prompt(text, default="", show_default=False, hide_input=True)

    def ask_lines(self, text: str) -> List[str]:
        """Read lines until a blank one."""
        typer.echo(text)
        lines = []
        while True:
            line = typer.prompt("", default="", show_default=False, prompt_suffix="").strip()
            if not line:
                return lines
            lines.append(line)


class NonInteractivePrompter:
    """Never ask; fall back to defaults and empty answers."""

    def ask(self, text: str, default: str) -> str:
        return default

    def ask_secret(self, text: str) -> str:
        return ""

    def ask_lines(self, text: str) -> List[str]:
        return []


def user_exists(username: str) -> bool:
    """Check if a user account exists."""
    try:
        pwd.getpwnam(username)
    except KeyError:
        return False
    return True


def collect_config(
    prompter: Prompter,
    hostname: Optional[str] = None,
    timezone: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    ssh_keys: Optional[List[str]] = None,
) -> ProvisionConfig:
    """Build the run configuration, prompting for whatever was not given.

    The password is only needed when the user has to be created.
    Raises ProvisionError for a blank password or an empty key list.
    """
    config = ProvisionConfig()
    config.hostname = hostname or prompter.ask(
        "Specify hostname to set for this machine", DEFAULT_HOSTNAME
    )
    config.timezone = timezone or prompter.ask("Specify timezone", DEFAULT_TIMEZONE)
    config.username = username or prompter.ask(
        "Specify name for a default user", DEFAULT_USER_NAME
    )

    config.user_exists = user_exists(config.username)
    if not config.user_exists:
        if password is None:
            password = prompter.ask_secret("Enter password for a default user")
        if not password:
            raise ProvisionError("User password shouldn't be blank")
        config.password = password

    if ssh_keys is None:
        ssh_keys = prompter.ask_lines("Enter public ssh keys (one by line):")
    config.ssh_keys = [key.strip() for key in ssh_keys if key.strip()]
    if not config.ssh_keys:
        raise ProvisionError("At least one ssh key should be provided")

    return config
