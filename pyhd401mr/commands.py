"""Command table for the OREI HD-401MR.

Every command is a 3 character mnemonic optionally followed by an argument,
e.g. PWR1. The table records which mnemonics the switcher acknowledges and
which argument choices each command offers.
"""

from dataclasses import dataclass
from typing import Optional

from pyhd401mr.exceptions import InvalidChoiceError, UnknownCommandError

MNEMONIC_LENGTH = 3


@dataclass(frozen=True)
class Choice:
    argument: str
    label: str


@dataclass(frozen=True)
class CommandSpec:
    mnemonic: str
    label: str
    description: str
    category: str
    produces_reply: bool = True
    choices: tuple[Choice, ...] = ()

    def choice(self, argument: str) -> Optional[Choice]:
        for choice in self.choices:
            if choice.argument == argument:
                return choice
        return None


CHOICE_ONOFF = (
    Choice("1", "ON"),
    Choice("0", "OFF"),
)

CHOICE_RES = (
    Choice("2", "1080p @60hz"),
    Choice("1", "720p @60hz"),
)

CHOICE_INPUT = (
    Choice("1", "Input 1"),
    Choice("2", "Input 2"),
    Choice("3", "Input 3"),
    Choice("4", "Input 4"),
)

CHOICE_DUAL = (
    Choice("12", "Input 1 & 2"),
    Choice("34", "Input 3 & 4"),
)

# Power replies come back as 'Power On/Off' and are truncated to these
POWER_ALIAS = {
    "Pown": "PWR1",
    "Powf": "PWR0",
}

_COMMAND_LIST = (
    CommandSpec("PWR", "Switcher Power", "Power", "Settings", choices=CHOICE_ONOFF),
    CommandSpec("OSD", "On Screen Display", "OSD", "Settings", choices=CHOICE_ONOFF),
    CommandSpec("VBX", "On Screen Split Line", "OSL", "Settings", choices=CHOICE_ONOFF),
    CommandSpec("RES", "Output Resolution", "OutRes", "Settings", choices=CHOICE_RES),
    CommandSpec("SMD", "Full Screen Mode", "FS", "Modes", choices=CHOICE_INPUT),
    CommandSpec("DMD", "Dual Mode", "2x", "Modes", choices=CHOICE_DUAL),
    CommandSpec("QMD", "1 x 3 Mode", "1x3", "Modes", choices=CHOICE_INPUT),
    CommandSpec("HMD", "H Quad Mode", "HQuad", "Modes"),
    # input selection is never acknowledged reliably
    CommandSpec("SWV", "Select Video Input", "VIn", "Inputs", produces_reply=False, choices=CHOICE_INPUT),
    CommandSpec("SWA", "Select Audio Input", "AIn", "Inputs", produces_reply=False, choices=CHOICE_INPUT),
)

COMMANDS: dict[str, CommandSpec] = {spec.mnemonic: spec for spec in _COMMAND_LIST}

# Fixed commands with their own name: (label, description, category)
SHORTCUTS: dict[str, tuple[str, str, str]] = {
    "QMD0": ("Quad Split Mode", "Quad", "Modes"),
    "SWA0": ("Mute Audio", "AMute", "Inputs"),
}


def lookup(mnemonic: str) -> Optional[CommandSpec]:
    """Return the spec for the first three characters of ``mnemonic``."""
    return COMMANDS.get(mnemonic[:MNEMONIC_LENGTH])


def produces_reply(command: str) -> bool:
    """Whether the switcher acknowledges ``command``. Unknown mnemonics are assumed to reply."""
    spec = lookup(command)
    return spec is None or spec.produces_reply


def build_command(action: str, choice: Optional[str] = None) -> str:
    """Compose an action id and the selected choice into a command string.

    ``build_command("PWR", "1")`` gives ``"PWR1"``; shortcuts and argument-less
    commands take no choice.
    """
    if action in SHORTCUTS:
        if choice:
            raise InvalidChoiceError(f"{action} does not take an argument")
        return action
    spec = COMMANDS.get(action)
    if spec is None:
        raise UnknownCommandError(f"Unknown command: {action!r}")
    if not spec.choices:
        if choice:
            raise InvalidChoiceError(f"{action} does not take an argument")
        return action
    if choice is None:
        choice = spec.choices[0].argument
    if spec.choice(choice) is None:
        valid = ", ".join(c.argument for c in spec.choices)
        raise InvalidChoiceError(f"Invalid choice {choice!r} for {action}, must be one of: {valid}")
    return action + choice
