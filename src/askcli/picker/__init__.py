"""Interactive session picker driven by raw keyboard input."""

from askcli.picker.keys import Key, KeyCommand, KeyDecoder, KeyInputReader, raw_mode
from askcli.picker.picker import CandidateEntry, PickerOutcome, PickerState, SessionPicker

__all__ = [
    "CandidateEntry",
    "Key",
    "KeyCommand",
    "KeyDecoder",
    "KeyInputReader",
    "PickerOutcome",
    "PickerState",
    "SessionPicker",
    "raw_mode",
]
