# client/confirmation.py
"""
Confirmation port: how the SDK asks a human for consent and passwords.

The SDK never renders UI itself. Callers pass an object implementing
ConfirmationPort; ConsolePort is a terminal implementation.
"""
import getpass
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple


@dataclass
class ActionDescription:
    action: str
    tags: List[Tuple[str, str]] = field(default_factory=list)
    summary: str = ""


@dataclass
class PasswordRequest:
    reason: str
    attempts_remaining: Optional[int] = None
    # True when the password is being chosen, not entered
    new_password: bool = False


@dataclass
class ConfirmationResult:
    proceed: bool
    password: Optional[str] = None


class ConfirmationPort(Protocol):
    def confirm_action(self, description: ActionDescription) -> ConfirmationResult: ...
    def request_password(self, request: PasswordRequest) -> ConfirmationResult: ...


class ConsolePort:
    def confirm_action(self, description: ActionDescription) -> ConfirmationResult:
        print(description.summary or f"Approve '{description.action}'?")
        for name, value in description.tags:
            print(f"  {name}: {value}")
        answer = input("Proceed? [y/N] ").strip().lower()
        if answer != "y":
            return ConfirmationResult(proceed=False)
        password = getpass.getpass("Master password: ")
        return ConfirmationResult(proceed=True, password=password or None)

    def request_password(self, request: PasswordRequest) -> ConfirmationResult:
        if request.attempts_remaining is not None:
            print(f"Invalid password, {request.attempts_remaining} attempt(s) left")
        prompt = "Choose a master password: " if request.new_password else "Master password: "
        if request.reason == "confirm":
            prompt = "Repeat the master password: "
        password = getpass.getpass(prompt)
        if not password:
            return ConfirmationResult(proceed=False)
        return ConfirmationResult(proceed=True, password=password)
